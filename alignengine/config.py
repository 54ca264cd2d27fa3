import os
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Optional, Dict, Any, List, Mapping

from .errors import ConfigurationRejected


def _env_bool(name: str, default: str = "0"):
    return lambda: os.getenv(name, default).lower() in ("1", "true", "yes")


def _env_float(name: str, default: float):
    return lambda: float(os.getenv(name, str(default)))


class ResponseStyle(Enum):
    """Wording profile used by the composer. Never changes the algorithmic path."""
    DIRECT = "direct"
    CONVERSATIONAL = "conversational"
    PROFESSIONAL = "professional"
    NEURODIVERSITY_AWARE = "neurodiversity_aware"


@dataclass(frozen=True)
class BranchProfile:
    name: str
    margin_override: Optional[float] = None
    max_jump_distance: Optional[int] = None  # None defers to Configuration.max_jump_distance
    response_style: ResponseStyle = ResponseStyle.DIRECT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "margin_override": self.margin_override,
            "max_jump_distance": self.max_jump_distance,
            "response_style": self.response_style.value,
        }


# Branch names the classifier can suggest
BRANCH_PERSONAL = "personal"
BRANCH_FORMAL = "formal"
BRANCH_SPECIALIZED = "specialized"


def default_branches() -> Dict[str, BranchProfile]:
    return {
        BRANCH_PERSONAL: BranchProfile(
            name=BRANCH_PERSONAL,
            margin_override=None,
            max_jump_distance=2,
            response_style=ResponseStyle.CONVERSATIONAL,
        ),
        BRANCH_FORMAL: BranchProfile(
            name=BRANCH_FORMAL,
            margin_override=0.15,
            max_jump_distance=2,
            response_style=ResponseStyle.PROFESSIONAL,
        ),
        BRANCH_SPECIALIZED: BranchProfile(
            name=BRANCH_SPECIALIZED,
            margin_override=None,
            max_jump_distance=3,
            response_style=ResponseStyle.NEURODIVERSITY_AWARE,
        ),
    }


STRICT_TOLERANCE = 1e-5


@dataclass(frozen=True)
class Configuration:
    """Tunable parameter set. Replaced wholesale, never mutated in place."""

    # Invariant: primary + margin ~= secondary
    primary: float = 2.89
    margin: float = 0.1
    secondary: float = 2.99
    processing_level: float = 2.89
    enforce_invariant: bool = True
    strict: bool = field(default_factory=_env_bool("ALIGNENGINE_STRICT"))
    tolerance: float = field(default_factory=_env_float("ALIGNENGINE_TOLERANCE", 1e-3))

    # Heat shield
    margin_rate: float = field(default_factory=_env_float("ALIGNENGINE_MARGIN_RATE", 0.1))
    max_jump_distance: int = 3

    # Margin bounds and AIMD rates
    min_margin: float = 0.05
    max_margin_increase: float = 0.5
    growth_rate: float = 0.01
    max_increase: float = 0.05
    contraction_rate: float = 0.001
    max_contraction_per_step: float = 0.05

    # Extraction / composition
    min_concept_length: int = 4
    max_concepts: int = 256
    summary_concepts: int = 3

    branches: Dict[str, BranchProfile] = field(default_factory=default_branches)
    default_branch: str = BRANCH_PERSONAL

    @property
    def effective_tolerance(self) -> float:
        return min(self.tolerance, STRICT_TOLERANCE) if self.strict else self.tolerance

    @property
    def drift(self) -> float:
        return abs((self.primary + self.margin) - self.secondary)

    @property
    def margin_ceiling(self) -> float:
        return self.primary + self.max_margin_increase

    def branch(self, name: Optional[str]) -> Optional[BranchProfile]:
        if name is None:
            return None
        return self.branches.get(name)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a flat dictionary; branches use dotted keys."""
        result = {}
        for f in fields(self):
            if f.name == "branches":
                continue
            result[f.name] = getattr(self, f.name)
        for name, profile in self.branches.items():
            for key, value in profile.to_dict().items():
                if key == "name":
                    continue
                result[f"branches.{name}.{key}"] = value
        return result

    def diff(self, other: "Configuration") -> Dict[str, tuple]:
        """
        Compare with another configuration.
        Returns dict of {key: (current_value, other_value)} for differences.
        """
        current = self.to_dict()
        other_dict = other.to_dict()
        differences = {}
        for key in set(current) | set(other_dict):
            if current.get(key) != other_dict.get(key):
                differences[key] = (current.get(key), other_dict.get(key))
        return differences

    def merge(self, partial: Dict[str, Any]) -> "Configuration":
        """
        Build a candidate configuration from a partial update.

        Keys are field names (``"margin"``), dotted branch keys
        (``"branches.formal.max_jump_distance"``) or ``"branches"`` mapping
        branch names to dicts of profile fields. Unknown keys or values that
        cannot be coerced raise ConfigurationRejected and nothing changes.
        """
        errors: List[str] = []
        scalar_updates: Dict[str, Any] = {}
        branch_updates: Dict[str, Dict[str, Any]] = {}
        field_types = {f.name: f for f in fields(self)}

        if partial is None:
            partial = {}
        if not isinstance(partial, Mapping):
            raise ConfigurationRejected([f"partial update must be a mapping, got {type(partial).__name__}"])

        for key, value in partial.items():
            if not isinstance(key, str):
                errors.append(f"configuration key {key!r} must be a string")
                continue
            if key == "branches":
                if not isinstance(value, dict):
                    errors.append("branches must be a mapping of name -> profile fields")
                    continue
                for name, profile in value.items():
                    if isinstance(profile, BranchProfile):
                        profile = profile.to_dict()
                    if not isinstance(profile, dict):
                        errors.append(f"branch '{name}' must be a mapping")
                        continue
                    branch_updates.setdefault(name, {}).update(profile)
                continue

            if key.startswith("branches."):
                parts = key.split(".")
                if len(parts) != 3:
                    errors.append(f"malformed branch key '{key}'")
                    continue
                branch_updates.setdefault(parts[1], {})[parts[2]] = value
                continue

            if key not in field_types:
                errors.append(f"unknown configuration key '{key}'")
                continue

            current_value = getattr(self, key)
            try:
                scalar_updates[key] = _coerce(current_value, value)
            except (TypeError, ValueError):
                errors.append(f"invalid value for '{key}': {value!r}")

        branches = dict(self.branches)
        for name, updates in branch_updates.items():
            try:
                branches[name] = _merge_branch(branches.get(name), name, updates)
            except (TypeError, ValueError) as e:
                errors.append(f"invalid branch '{name}': {e}")

        if errors:
            raise ConfigurationRejected(errors, partial)

        if branch_updates:
            scalar_updates["branches"] = branches
        return replace(self, **scalar_updates)


def _coerce(current_value: Any, value: Any) -> Any:
    # Type conversion follows the type of the current value
    if isinstance(current_value, bool):
        if isinstance(value, str):
            return value.lower() in ("1", "true", "yes")
        return bool(value)
    if isinstance(current_value, int):
        if isinstance(value, float) and not value.is_integer():
            raise ValueError("expected an integer")
        return int(value)
    if isinstance(current_value, float):
        return float(value)
    if isinstance(current_value, str):
        return str(value)
    return value


def _merge_branch(existing: Optional[BranchProfile], name: str, updates: Dict[str, Any]) -> BranchProfile:
    base = existing or BranchProfile(name=name)
    kwargs: Dict[str, Any] = {}
    for key, value in updates.items():
        if key == "name":
            continue
        if key == "margin_override":
            kwargs[key] = None if value is None else float(value)
        elif key == "max_jump_distance":
            kwargs[key] = None if value is None else int(value)
        elif key == "response_style":
            kwargs[key] = value if isinstance(value, ResponseStyle) else ResponseStyle(value)
        else:
            raise ValueError(f"unknown profile field '{key}'")
    return replace(base, **kwargs)
