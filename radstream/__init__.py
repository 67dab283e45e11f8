"""radstream: edit and drive a YouTube live broadcast from a small web app."""

__version__ = "0.3.0"
