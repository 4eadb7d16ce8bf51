"""Gen Alpha Slack translation bot."""

from gen_alpha_bot._version import __version__

__all__ = ["__version__"]
