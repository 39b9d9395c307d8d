"""crank: build, bundle and run Rust games for the Playdate."""

__version__ = "0.1.0"
