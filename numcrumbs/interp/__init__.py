def __getattr__(name):
    if name == "kernel":
        from numcrumbs.interp import kernel

        return kernel
    aerr = f"module 'numcrumbs.interp' has no attribute {name}"
    raise AttributeError(aerr)
