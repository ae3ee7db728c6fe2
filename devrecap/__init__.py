"""dev-recap: AI-powered recaps of recent git activity across local repositories."""

__version__ = "0.1.0"
