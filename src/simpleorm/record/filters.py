"""
Output and input filters.

Record types list their filters explicitly by overriding
``Record.output_filters()`` and ``Record.input_filters()``. Each returns an
ordered sequence of method names or plain functions; the lists are resolved
into a FilterPipeline once, when the record class is created.

- Output filters are called as ``hook(record)`` after data has been loaded
  into the record.
- Input filters are called as ``hook(record, data)`` before a write and must
  return the (possibly new) mapping; each one receives the previous result.
"""

from collections.abc import Mapping
from typing import Any, Callable, Iterable, Union

from simpleorm.errors import ValidationError

Hook = Callable[..., Any]
HookSpec = Union[str, Hook]


def resolve_hooks(cls: type, specs: Iterable[HookSpec]) -> tuple[Hook, ...]:
    """Turn a list of method names and functions into unbound callables."""
    hooks = []
    for spec in specs:
        if isinstance(spec, str):
            hook = getattr(cls, spec, None)
            if not callable(hook):
                raise ValidationError(f'{cls.__name__} has no filter method named "{spec}"')
            hooks.append(hook)
        elif callable(spec):
            hooks.append(spec)
        else:
            raise ValidationError(f"{cls.__name__} filter {spec!r} is not a name or a callable")
    return tuple(hooks)


def hook_name(hook: Hook) -> str:
    return getattr(hook, "__qualname__", repr(hook))


class FilterPipeline:
    def __init__(self, output_hooks: tuple[Hook, ...] = (), input_hooks: tuple[Hook, ...] = ()):
        self.output_hooks = output_hooks
        self.input_hooks = input_hooks

    @classmethod
    def for_type(cls, record_type: type) -> "FilterPipeline":
        return cls(
            output_hooks=resolve_hooks(record_type, record_type.output_filters()),
            input_hooks=resolve_hooks(record_type, record_type.input_filters()),
        )

    def run_output(self, record) -> None:
        for hook in self.output_hooks:
            hook(record)

    def run_input(self, record, data: Mapping) -> dict:
        for hook in self.input_hooks:
            data = hook(record, data)
            if not isinstance(data, Mapping):
                raise ValidationError(
                    f"Input filter {hook_name(hook)} must return a mapping, got {type(data).__name__}"
                )
        return dict(data)

    def __repr__(self) -> str:
        return (
            f"FilterPipeline(output={[hook_name(h) for h in self.output_hooks]}, "
            f"input={[hook_name(h) for h in self.input_hooks]})"
        )
