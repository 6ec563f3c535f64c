"""
Copyright © 2023 Howard Hughes Medical Institute, Authored by Carsen Stringer and Marius Pachitariu.
"""
from importlib_metadata import PackageNotFoundError, version as _version

try:
    version = _version("stackalign")
except PackageNotFoundError:
    version = "unknown"
