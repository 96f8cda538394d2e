"""
Module- and file-loading to find the controller to run.

The target is usually specified on the command-line in one of two forms,
both resembling how Python itself addresses the code:

* A plain file with an attribute (``k8s-operator run path/to/file.py:MyController``).
* An importable module with an attribute (``k8s-operator run pkg.mod:MyController``).

The attribute is looked up after the file/module is loaded.
Dotted attribute paths (``mod:obj.attr``) are supported.
"""
import importlib
import importlib.abc
import importlib.util
import os.path
import sys
from types import ModuleType
from typing import Any, cast


def load_module(source: str) -> ModuleType:
    """
    Load a file by its path or import a module by its name.
    """
    if source.endswith('.py') or os.path.sep in source:
        path = source
        sys.path.insert(0, os.path.abspath(os.path.dirname(path)))
        name = f'__k8soperator_script__{path}'  # same pseudo-name as '__main__'
        spec = importlib.util.spec_from_file_location(name, path)
        module = importlib.util.module_from_spec(spec) if spec is not None else None
        loader = cast(importlib.abc.Loader, spec.loader) if spec is not None else None
        if module is not None and loader is not None:
            sys.modules[name] = module
            loader.exec_module(module)
            return module
        else:
            raise ImportError(f"Failed loading {path}: no module or loader.")
    else:
        return importlib.import_module(source)


def load_target(target: str) -> Any:
    """
    Resolve the ``source:attribute`` target to the object it refers to.
    """
    source, sep, attrpath = target.rpartition(':')
    if not sep or not source or not attrpath:
        raise ValueError(f"The target must be in the form 'module:attribute', got {target!r}.")

    obj: Any = load_module(source)
    for attr in attrpath.split('.'):
        try:
            obj = getattr(obj, attr)
        except AttributeError:
            raise AttributeError(f"Attribute {attrpath!r} is not found in {source!r}.") from None
    return obj
