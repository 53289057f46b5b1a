# expense_calculator/backends/__init__.py
from importlib import import_module

from expense_calculator.backends.base import BackendError, BaseBackend

__all__ = ["BackendError", "BaseBackend", "get_backend"]


def get_backend(name, config):
    try:
        backend_path = config['backends'][name]
    except KeyError:
        raise ValueError(f"Unknown backend '{name}'") from None
    module_name, cls_name = backend_path.rsplit('.', 1)
    mod = import_module(module_name)
    return getattr(mod, cls_name)(config)
