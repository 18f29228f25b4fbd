"""URL monitor — the unit run on every trigger firing."""

from .executor import UrlMonitor
