"""
joinfiles - concatenate a source tree into one annotated text file.

This package walks a directory tree, prunes and filters entries with
include/exclude glob rules, skips binary content and writes the remaining
files, each under a path header, into a single file for use as context with
large language models.
"""

__version__ = "0.3.0"
__author__ = "joinfiles contributors"
