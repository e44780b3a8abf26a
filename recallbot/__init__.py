"""recallbot - recover deleted chat messages."""

__version__ = "0.1.0"
__logo__ = "🛡️"
