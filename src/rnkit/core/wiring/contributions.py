"""Runtime contributions and the wiring operations built from them."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from rnkit.core.exceptions import ValidationError

# Contribution type -> marker type it targets by default.
MARKER_FOR_CONTRIBUTION: Dict[str, str] = {
    "import": "imports",
    "provider": "providers",
    "init-step": "init-steps",
    "registration": "registrations",
    "root": "root",
}


@dataclass(frozen=True)
class SymbolRef:
    symbol: str
    source: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SymbolRef":
        return cls(symbol=str(data["symbol"]), source=str(data.get("source", "")))

    def to_dict(self) -> Dict[str, str]:
        return {"symbol": self.symbol, "source": self.source}


SymbolOrCode = Union[SymbolRef, str]


def _symbol_or_code(value: Any) -> SymbolOrCode:
    if isinstance(value, str):
        return value
    return SymbolRef.from_dict(value)


def _dump_symbol_or_code(value: SymbolOrCode) -> Any:
    return value if isinstance(value, str) else value.to_dict()


@dataclass(frozen=True)
class Contribution:
    """A structural edit declared by a capability.

    ``type`` is one of ``import``, ``provider``, ``init-step``,
    ``registration`` or ``root``; only the fields relevant to it are set.
    """

    type: str
    order: int = 0
    imports: List[SymbolRef] = field(default_factory=list)
    provider: Optional[SymbolRef] = None
    props: Dict[str, Any] = field(default_factory=dict)
    step: Optional[SymbolOrCode] = None
    args: List[Any] = field(default_factory=list)
    registration: Optional[SymbolOrCode] = None
    root: Optional[SymbolRef] = None

    @property
    def marker_type(self) -> str:
        return MARKER_FOR_CONTRIBUTION[self.type]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Contribution":
        ctype = str(data.get("type", ""))
        if ctype not in MARKER_FOR_CONTRIBUTION:
            raise ValidationError(
                f"Unknown contribution type: {ctype!r}",
                context={"contribution": dict(data)},
            )
        kwargs: Dict[str, Any] = {"type": ctype, "order": int(data.get("order") or 0)}
        if ctype == "import":
            kwargs["imports"] = [SymbolRef.from_dict(i) for i in data.get("imports") or []]
            if not kwargs["imports"]:
                raise ValidationError("Import contribution must list at least one import")
        elif ctype == "provider":
            kwargs["provider"] = SymbolRef.from_dict(data["provider"])
            kwargs["props"] = dict(data.get("props") or {})
        elif ctype == "init-step":
            kwargs["step"] = _symbol_or_code(data["step"])
            kwargs["args"] = list(data.get("args") or [])
        elif ctype == "registration":
            kwargs["registration"] = _symbol_or_code(data["registration"])
        else:
            kwargs["root"] = SymbolRef.from_dict(data["root"])
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"type": self.type}
        if self.order:
            out["order"] = self.order
        if self.type == "import":
            out["imports"] = [i.to_dict() for i in self.imports]
        elif self.type == "provider" and self.provider is not None:
            out["provider"] = self.provider.to_dict()
            if self.props:
                out["props"] = dict(self.props)
        elif self.type == "init-step" and self.step is not None:
            out["step"] = _dump_symbol_or_code(self.step)
            if self.args:
                out["args"] = list(self.args)
        elif self.type == "registration" and self.registration is not None:
            out["registration"] = _dump_symbol_or_code(self.registration)
        elif self.root is not None:
            out["root"] = self.root.to_dict()
        return out


@dataclass(frozen=True)
class WiringOperation:
    """One contribution bound to a marker in a concrete file."""

    capability_id: str
    marker_type: str
    file: str
    contribution: Contribution
    order: Optional[int] = None
    # 1-based position among this capability's contributions of the same marker and type.
    occurrence: int = 1

    @property
    def effective_order(self) -> int:
        return self.order if self.order is not None else self.contribution.order

    @property
    def operation_id(self) -> str:
        base = f"{self.capability_id}-{self.marker_type}-{self.contribution.type}"
        return base if self.occurrence == 1 else f"{base}-{self.occurrence}"

    @property
    def sort_key(self) -> tuple:
        return (self.effective_order, self.capability_id, self.occurrence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capabilityId": self.capability_id,
            "markerType": self.marker_type,
            "file": self.file,
            "order": self.effective_order,
            "operationId": self.operation_id,
            "contribution": self.contribution.to_dict(),
        }


def render_props(props: Mapping[str, Any]) -> str:
    """Render JSX props as `` key={json}`` pairs in declaration order."""
    return "".join(f" {key}={{{json.dumps(value)}}}" for key, value in props.items())


def render_call(target: SymbolOrCode, args: Optional[List[Any]] = None) -> str:
    """Render a statement for a symbol call or a raw code string."""
    if isinstance(target, str):
        return target.rstrip().rstrip(";") + ";"
    rendered = ", ".join(json.dumps(a) for a in (args or []))
    return f"{target.symbol}({rendered});"


__all__ = [
    "MARKER_FOR_CONTRIBUTION",
    "Contribution",
    "SymbolRef",
    "WiringOperation",
    "render_call",
    "render_props",
]
