from inspect import getfile, getsourcelines
from os.path import basename
import re
from time import time
from typing import Any, Callable

from src.platform.logging.loguru_io_config import (
    MAX_CONTENT_LENGTH,
    SENSITIVE_KEYWORDS,
    call_depth_var,
    chain_start_time_var,
)


_MASK = '********'
_BEARER_PATTERN = re.compile(r'(Bearer\s+)[A-Za-z0-9\-_.]+')


def get_chain_start_time() -> float:
    if not (start_time := chain_start_time_var.get()):
        start_time = time()
        chain_start_time_var.set(start_time)
    return start_time


def enter_call() -> None:
    call_depth_var.set(call_depth_var.get() + 1)


def reset_call_depth() -> None:
    layer = call_depth_var.get() - 1
    call_depth_var.set(layer)
    if layer <= 0:
        call_depth_var.set(0)
        chain_start_time_var.set(0)


def build_call_target_func_path(func: Callable[..., Any]) -> str:
    target = getattr(func, '__func__', func)
    try:
        lineno = getsourcelines(target)[1]
        filename = basename(getfile(target))
    except (OSError, TypeError):
        return func.__qualname__
    return f'{filename}::{func.__qualname__}:{lineno}'


def should_mask_keyword(keyword: Any, value: Any) -> Any:
    return _MASK if str(keyword).lower() in SENSITIVE_KEYWORDS else value


def mask_sensitive(data: Any) -> Any:
    if isinstance(data, dict):
        return {key: mask_sensitive(should_mask_keyword(key, value)) for key, value in data.items()}
    if isinstance(data, list | tuple):
        return type(data)(mask_sensitive(item) for item in data)
    if isinstance(data, str):
        return _BEARER_PATTERN.sub(rf'\1{_MASK}', data)
    return data


def truncate_content(data: Any, max_length: int = MAX_CONTENT_LENGTH) -> Any:
    text = data if isinstance(data, str) else repr(data)
    if len(text) <= max_length:
        return data
    return f'{text[:max_length]}... (+{len(text) - max_length} chars)'
