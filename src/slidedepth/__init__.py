"""slidedepth — windowed mean-depth summaries from sorted per-base depth."""

__version__ = "1.1.0"

DEFAULT_WINDOW_SIZE = 5000
TOTAL_LABEL = "TOTAL"
