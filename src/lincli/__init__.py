"""lincli - attach files and links to Linear issues from the command line."""

__version__ = "0.1.0"
