"""Program version."""

__version__ = "1.0.0"
VERSION_DATE = "2023-05-18"
VERSION_STRING = f"{__version__} {VERSION_DATE}"
PROJECT_URL = "https://github.com/daniel-starke/sm2lbpp"
