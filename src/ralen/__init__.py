"""ralen - install, resolve and run prebuilt language runtimes."""

__version__ = "0.1.0"
