"""MySky: MySpace-style profiles, blogs and photo albums stored in AT Protocol repos."""

__version__ = "0.1.0"
