"""No-op class decorators read by the metadata extractor.

They exist so annotated request types import and run; the scanner reads
them from source and they have no runtime effect::

    @endpoint_name("CreateItem")
    @produces[NotFoundError](404)
    class CreateItemCommand(BaseModel):
        name: str
"""

from __future__ import annotations

from typing import Any, Callable

__all__ = [
    "endpoint_name",
    "endpoint_summary",
    "endpoint_description",
    "tags",
    "allow_anonymous",
    "accepts",
    "produces",
    "produces_problem",
]


class _Marker:
    """A decorator that returns the decorated class unchanged."""

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return f"<marker {self._name}>"

    def __getitem__(self, _item: Any) -> _Marker:
        return self

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        # Bare usage: @allow_anonymous
        if len(args) == 1 and not kwargs and isinstance(args[0], type):
            return args[0]

        def decorate(cls: type) -> type:
            return cls

        return decorate


endpoint_name: Callable[..., Any] = _Marker("endpoint_name")
endpoint_summary: Callable[..., Any] = _Marker("endpoint_summary")
endpoint_description: Callable[..., Any] = _Marker("endpoint_description")
tags: Callable[..., Any] = _Marker("tags")
allow_anonymous: Callable[..., Any] = _Marker("allow_anonymous")
accepts: Callable[..., Any] = _Marker("accepts")
produces: Any = _Marker("produces")
produces_problem: Callable[..., Any] = _Marker("produces_problem")
