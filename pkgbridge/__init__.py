"""pkgbridge — search winget and chocolatey, generate Intune install scripts."""

__version__ = "0.1.0"
