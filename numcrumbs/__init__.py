from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("numcrumbs")
except PackageNotFoundError:
    __version__ = "unknown"


def __getattr__(name):
    if name == "interp":
        from numcrumbs import interp

        return interp
    aerr = f"module 'numcrumbs' has no attribute {name}"
    raise AttributeError(aerr)
