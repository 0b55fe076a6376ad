"""lspinstall — find out how to install the executable a language-server client needs."""

__version__ = "0.1.0"
