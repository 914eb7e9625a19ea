"""cmdhandler - run chat and CI triggered plugins on behalf of remote callers."""

__version__ = "0.1.0"
