# -*- coding: utf-8 -*-
# Re-exports der Kernklassen

from .auth import TokenProvider
from .http import GraphClient
from .logbuffer import LogBuffer
from .util import ELLIPSIS, deep_get, mask_secrets, sanitize_for_filename

__all__ = [
    "TokenProvider",
    "GraphClient",
    "LogBuffer",
    "ELLIPSIS",
    "deep_get",
    "mask_secrets",
    "sanitize_for_filename",
]
