from importlib.metadata import PackageNotFoundError, version
import logging

try:
    __version__ = version("petpal")
except PackageNotFoundError:
    __version__ = "0.0.0"

# add nullhandler to prevent a default configuration being used if the calling application doesn't set one
logging.getLogger("petpal").addHandler(logging.NullHandler())
