"""pakky - queue, install and configure Homebrew packages."""

__version__ = "0.1.0"
