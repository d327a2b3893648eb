"""noctum-installer - install and supervise the noctum daemon."""

__version__ = "0.1.0"
__logo__ = "🌙"
