__version__ = "0.9.0"
__git_revision__ = ""
