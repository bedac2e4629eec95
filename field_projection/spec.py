"""
    Declarative description of a projection: which fields of a record to keep
    and which related records to nest, following the `only` / `except` /
    `include` options of the classic `to_json(...)` call.
"""
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

logger = logging.getLogger(__name__)


def _names(value) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class ProjectionSpec:
    """
    Immutable projection configuration.

    ```
    ProjectionSpec(
        except_=["updated_at"],
        include={
            "bird": {"only": ["name", "species"]},
            "location": ProjectionSpec(only=["latitude", "longitude"]),
        },
    )
    ```

    :param only: if set, restrict the output to exactly these fields, in this order.
    :param except_: fields dropped from the default field set. Ignored when `only` is set.
    :param include: relation name -> nested spec. Nested specs may be given as
        ProjectionSpec, as an options dict, or a list of names for empty specs.
    :param methods: computed fields declared on the shape to append to the output.
    """

    only: tuple[str, ...] | None = None
    except_: tuple[str, ...] | None = None
    include: Mapping[str, "ProjectionSpec"] = field(default_factory=dict)
    methods: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "only", _names(self.only))
        object.__setattr__(self, "except_", _names(self.except_))
        object.__setattr__(self, "methods", _names(self.methods) or ())
        object.__setattr__(self, "include", MappingProxyType(_coerce_include(self.include)))
        if self.only is not None and self.except_:
            logger.warning(f"Projection declares both only={list(self.only)} and "
                           f"except={list(self.except_)}: 'except' is ignored")

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None = None) -> "ProjectionSpec":
        """
        Build a spec from a `to_json`-style options dict, where `except` is a plain key:
        {"except": [...], "include": {"bird": {"only": [...]}}}
        """
        options = dict(options or {})
        unknown = set(options) - {"only", "except", "except_", "include", "methods"}
        if unknown:
            raise ValueError(f"Unsupported projection option(s): {', '.join(sorted(unknown))}")
        return cls(
            only=options.get("only"),
            except_=options.get("except", options.get("except_")),
            include=options.get("include") or {},
            methods=options.get("methods") or (),
        )

    @classmethod
    def coerce(cls, value) -> "ProjectionSpec":
        if value is None:
            return cls()
        if isinstance(value, ProjectionSpec):
            return value
        if isinstance(value, Mapping):
            return cls.from_options(value)
        raise TypeError(f"Cannot build a ProjectionSpec from {type(value).__name__}")

    @property
    def is_empty(self) -> bool:
        return self.only is None and not self.except_ and not self.include and not self.methods

    def to_options(self) -> dict:
        """Inverse of from_options, mostly useful for logging and debugging."""
        ret = {}
        if self.only is not None:
            ret["only"] = list(self.only)
        if self.except_:
            ret["except"] = list(self.except_)
        if self.methods:
            ret["methods"] = list(self.methods)
        if self.include:
            ret["include"] = {name: nested.to_options() for name, nested in self.include.items()}
        return ret


def _coerce_include(include) -> dict[str, ProjectionSpec]:
    if not include:
        return {}
    if isinstance(include, str):
        return {include: ProjectionSpec()}
    if isinstance(include, Mapping):
        return {name: ProjectionSpec.coerce(nested) for name, nested in include.items()}
    # list / tuple of relation names
    return {name: ProjectionSpec() for name in include}
