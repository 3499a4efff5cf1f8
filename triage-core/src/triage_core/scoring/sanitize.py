"""
Sanitizer for untrusted partial scoring-config overrides.

``normalize(overrides, base)`` walks the ScoringConfig model tree and, for every
leaf, either accepts a coerced override value or falls back to the value in
``base``. Numeric bounds come from the ``Field(ge=..., le=...)`` declarations in
``triage_core.scoring.models``. Sanitization is total: any JSON-like input,
including hostile or garbled values, yields a valid ScoringConfig.

Merge rules:
- nested sections merge field by field;
- maps (category weights, triage adjustments, ...) merge key by key;
- rule lists merge by identity (``prefix`` for cross-label rules, ``id`` or
  position for boosts, action rules and schedule entries). Matching entries are
  updated in place, unmatched override entries are appended and unmatched base
  entries are kept.

Keys are accepted in snake_case or camelCase.
"""
from collections.abc import Mapping
from typing import Annotated, Any, Dict, Literal, Optional, Tuple, Type, Union, get_args, get_origin
import json

import structlog
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticUndefined

from ..utils.coerce import to_bool, to_number
from ..utils.tz import round_half_up
from .defaults import DEFAULT_SCORING_CONFIG
from .models import CrossLabelRule, ScoringConfig

logger = structlog.get_logger()

_MISSING = object()

# Identity key per list entry model; everything else merges by "id".
_IDENTITY_KEYS: Dict[type, str] = {CrossLabelRule: "prefix"}


def _bounds(metadata) -> Tuple[Optional[float], Optional[float]]:
    lower = upper = None
    for item in metadata:
        if getattr(item, "ge", None) is not None:
            lower = item.ge
        if getattr(item, "le", None) is not None:
            upper = item.le
    return lower, upper


def _lookup(raw: Mapping, name: str) -> Any:
    if name in raw:
        return raw[name]
    camel = to_camel(name)
    if camel in raw:
        return raw[camel]
    return _MISSING


def _sanitize_number(raw: Any, fallback: Any, metadata, integer: bool, path: str) -> Any:
    number = to_number(raw)
    if number is None:
        if raw is not _MISSING:
            logger.debug("Override value rejected", field=path, value=repr(raw))
        return fallback
    lower, upper = _bounds(metadata)
    if lower is not None:
        number = max(lower, number)
    if upper is not None:
        number = min(upper, number)
    return round_half_up(number) if integer else float(number)


def _sanitize_scalar_sequence(element_type, metadata, raw: Any, fallback: Any, path: str) -> Any:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return fallback

    origin = get_origin(element_type)
    if origin is Annotated:
        element_type, *extra = get_args(element_type)
        metadata = [m for e in extra for m in getattr(e, "metadata", [e])]

    values = []
    for candidate in raw:
        if element_type is str:
            if not isinstance(candidate, str) or not candidate.strip():
                continue
            value = candidate.strip()
        elif element_type is int:
            number = to_number(candidate)
            if number is None:
                continue
            value = round_half_up(number)
            lower, upper = _bounds(metadata)
            if (lower is not None and value < lower) or (upper is not None and value > upper):
                logger.debug("Override entry out of range", field=path, value=value)
                continue
        else:
            continue
        if value not in values:
            values.append(value)
    return tuple(values)


def _sanitize_map(value_type, raw: Any, fallback: Dict[str, Any], path: str) -> Dict[str, Any]:
    result = dict(fallback or {})
    if not isinstance(raw, Mapping):
        return result

    metadata = []
    if get_origin(value_type) is Annotated:
        value_type, *extra = get_args(value_type)
        metadata = [m for e in extra for m in getattr(e, "metadata", [e])]

    if value_type is Any:
        return {str(k): v for k, v in raw.items()}

    for key, value in raw.items():
        if not isinstance(key, str) or not key.strip():
            continue
        key = key.strip()
        result[key] = _sanitize_number(
            value, result.get(key, 0), metadata, value_type is int, f"{path}.{key}"
        )
    return result


def _identity(candidate: Mapping, key: str) -> str:
    value = candidate.get(key)
    return value.strip() if isinstance(value, str) else ""


def _merge_entries(model_cls: Type[BaseModel], raw: Any, base_entries: Tuple[BaseModel, ...], path: str):
    if not isinstance(raw, (list, tuple)) or not raw:
        return tuple(base_entries)

    key = _IDENTITY_KEYS.get(model_cls, "id")
    merged: Dict[str, BaseModel] = {getattr(entry, key): entry for entry in base_entries}

    for index, candidate in enumerate(raw):
        if isinstance(candidate, BaseModel):
            candidate = candidate.model_dump()
        if not isinstance(candidate, Mapping):
            logger.debug("Override entry ignored", field=path, index=index)
            continue

        identity = _identity(candidate, key)
        if not identity:
            if key != "id":
                continue
            if index < len(base_entries):
                identity = getattr(base_entries[index], key)
            else:
                identity = f"{path.rsplit('.', 1)[-1]}-{index + 1}"

        values = _sanitize_fields(model_cls, candidate, merged.get(identity), f"{path}[{identity}]")
        values[key] = identity
        if model_cls is CrossLabelRule and not values.get("description"):
            values["description"] = identity
        merged[identity] = model_cls(**values)

    return tuple(merged.values())


def _sanitize_value(annotation, metadata, raw: Any, fallback: Any, path: str) -> Any:
    origin = get_origin(annotation)

    if origin is Annotated:
        inner, *extra = get_args(annotation)
        nested = [m for e in extra for m in getattr(e, "metadata", [e])]
        return _sanitize_value(inner, list(metadata) + nested, raw, fallback, path)

    if origin is Union:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if raw is None:
            return None
        if raw is _MISSING:
            return fallback
        return _sanitize_value(members[0], metadata, raw, fallback, path)

    if origin is dict:
        # Always a fresh dict; the base holds read-only views.
        return _sanitize_map(get_args(annotation)[1], raw, fallback, path)

    if raw is _MISSING or raw is None:
        return fallback

    if origin is Literal:
        choices = get_args(annotation)
        candidate = raw.strip().lower() if isinstance(raw, str) else raw
        return candidate if candidate in choices else fallback

    if origin is tuple:
        element_type = get_args(annotation)[0]
        if isinstance(element_type, type) and issubclass(element_type, BaseModel):
            return _merge_entries(element_type, raw, fallback or (), path)
        return _sanitize_scalar_sequence(element_type, metadata, raw, fallback, path)

    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        if isinstance(raw, BaseModel):
            raw = raw.model_dump()
        if not isinstance(raw, Mapping):
            return fallback
        return annotation(**_sanitize_fields(annotation, raw, fallback, path))

    if annotation is bool:
        parsed = to_bool(raw)
        return fallback if parsed is None else parsed

    if annotation is int or annotation is float:
        return _sanitize_number(raw, fallback, metadata, annotation is int, path)

    if annotation is str:
        if isinstance(raw, str) and raw.strip():
            return raw.strip()
        return fallback

    return fallback


def _sanitize_fields(
    model_cls: Type[BaseModel], raw: Mapping, base: Optional[BaseModel], path: str
) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for name, field in model_cls.model_fields.items():
        if base is not None:
            fallback = getattr(base, name)
        else:
            fallback = field.get_default(call_default_factory=True)
            if fallback is PydanticUndefined:
                fallback = ""
        values[name] = _sanitize_value(
            field.annotation, field.metadata, _lookup(raw, name), fallback, f"{path}.{name}"
        )
    return values


def normalize(overrides: Any = None, base: Optional[ScoringConfig] = None) -> ScoringConfig:
    """
    Merge a partial, untrusted override into ``base`` (default config when omitted).

    Never raises for malformed input; invalid leaves keep the base value.
    """
    base = base if base is not None else DEFAULT_SCORING_CONFIG
    if isinstance(overrides, BaseModel):
        overrides = overrides.model_dump()
    if not isinstance(overrides, Mapping):
        return base
    return ScoringConfig(**_sanitize_fields(ScoringConfig, overrides, base, "config"))


def get_scoring_config(overrides: Any = None) -> ScoringConfig:
    """Shared read-only default when there is nothing to override, normalized config otherwise."""
    if not overrides:
        return DEFAULT_SCORING_CONFIG
    return normalize(overrides)


def clone(config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> ScoringConfig:
    # Read-only maps do not deep-copy; rebuild from a plain dump instead.
    return ScoringConfig.model_validate(config.model_dump())


def canonical_json(config: Union[ScoringConfig, Mapping]) -> str:
    """Key-sorted serialization used for equality checks."""
    data = config.to_dict() if isinstance(config, ScoringConfig) else config
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


def is_equal(a: Union[ScoringConfig, Mapping], b: Union[ScoringConfig, Mapping]) -> bool:
    return canonical_json(a) == canonical_json(b)
