"""Platform helpers: subprocesses, HTTP, signals, files."""
