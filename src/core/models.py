#!/usr/bin/env -S python3 -B -u
"""
Data Models for iptparse

This module provides the result tree produced by the listing parser:
a Table holding Chains in listing order, each holding its Rules in
evaluation order.

Key Features:
- Type-safe data structures with validation
- Built-in and user-defined chain variants checked on construction
- JSON serialization support
- Debug text rendering (not a stable format)
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any, Iterator
import json


@dataclass(frozen=True)
class Rule:
    """
    Represents one rule row of a chain.

    Immutable data structure; the match text and comment are empty
    strings when the row carries none.
    """
    packet_count: int
    byte_count: int
    target: str
    protocol: str
    option: str
    in_interface: str
    out_interface: str
    source: str
    destination: str
    match: str = ""
    comment: str = ""

    def render(self) -> str:
        """Render the rule as a single debug line."""
        return (
            f"packets={self.packet_count} bytes={self.byte_count} "
            f"target={self.target!r} proto={self.protocol!r} option={self.option!r} "
            f"in={self.in_interface!r} out={self.out_interface!r} "
            f"src={self.source!r} dest={self.destination!r} "
            f"match={self.match!r} comment={self.comment!r}"
        )

    def __str__(self) -> str:
        return self.render()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        """Create Rule from dictionary representation."""
        return cls(
            packet_count=data["packet_count"],
            byte_count=data["byte_count"],
            target=data["target"],
            protocol=data["protocol"],
            option=data["option"],
            in_interface=data["in_interface"],
            out_interface=data["out_interface"],
            source=data["source"],
            destination=data["destination"],
            match=data.get("match", ""),
            comment=data.get("comment", "")
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert Rule to dictionary representation."""
        return asdict(self)


@dataclass
class Chain:
    """
    Represents a named rule chain.

    A chain is either built-in (policy and packet/byte counters set,
    reference count None) or user-defined (reference count set, policy
    and counters None). Rules are kept in listing order.
    """
    name: str
    policy: Optional[str] = None
    packet_count: Optional[int] = None
    byte_count: Optional[int] = None
    reference_count: Optional[int] = None
    rules: List[Rule] = field(default_factory=list)

    def __post_init__(self):
        """Validate chain variant after initialization."""
        if not self.name:
            raise ValueError("Chain name must not be empty")

        builtin_fields = (self.policy, self.packet_count, self.byte_count)
        has_builtin = all(v is not None for v in builtin_fields)
        if not has_builtin and any(v is not None for v in builtin_fields):
            raise ValueError(f"Chain {self.name}: policy and counters must be set together")

        has_refs = self.reference_count is not None
        if has_builtin == has_refs:
            raise ValueError(
                f"Chain {self.name}: exactly one of policy/counters or reference count must be set"
            )

    @classmethod
    def builtin(cls, name: str, policy: str, packet_count: int, byte_count: int) -> "Chain":
        """Create a built-in chain with its default policy and counters."""
        return cls(name=name, policy=policy, packet_count=packet_count, byte_count=byte_count)

    @classmethod
    def user_defined(cls, name: str, reference_count: int) -> "Chain":
        """Create a user-defined chain with its reference count."""
        return cls(name=name, reference_count=reference_count)

    @property
    def is_builtin(self) -> bool:
        return self.policy is not None

    @property
    def is_user_defined(self) -> bool:
        return self.reference_count is not None

    def add_rule(self, rule: Rule) -> None:
        self.rules.append(rule)

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def render(self) -> str:
        """Render the chain and its rules as debug text."""
        header = f"Chain [ name={self.name!r}"
        if self.is_builtin:
            header += f" policy={self.policy!r} packets={self.packet_count} bytes={self.byte_count}"
        if self.is_user_defined:
            header += f" references={self.reference_count}"
        lines = [header + " ] {"]
        lines.extend(rule.render() for rule in self.rules)
        lines.append("}")
        return "\n".join(lines)

    def summary(self) -> str:
        """One line description used by the summary output."""
        if self.is_builtin:
            kind = f"policy {self.policy}, {self.packet_count} packets, {self.byte_count} bytes"
        else:
            kind = f"{self.reference_count} references"
        return f"{self.name} ({kind}): {len(self.rules)} rules"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chain":
        """Create Chain from dictionary representation."""
        return cls(
            name=data["name"],
            policy=data.get("policy"),
            packet_count=data.get("packet_count"),
            byte_count=data.get("byte_count"),
            reference_count=data.get("reference_count"),
            rules=[Rule.from_dict(r) for r in data.get("rules", [])]
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert Chain to dictionary representation, omitting the unused variant."""
        result: Dict[str, Any] = {"name": self.name}
        if self.is_builtin:
            result.update({
                "policy": self.policy,
                "packet_count": self.packet_count,
                "byte_count": self.byte_count
            })
        else:
            result["reference_count"] = self.reference_count
        result["rules"] = [r.to_dict() for r in self.rules]
        return result


@dataclass
class Table:
    """
    Parse result root: the chains of one listing in order of appearance.
    """
    chains: List[Chain] = field(default_factory=list)

    def add_chain(self, chain: Chain) -> None:
        self.chains.append(chain)

    @property
    def last_chain(self) -> Optional[Chain]:
        """Most recently appended chain, or None for an empty table."""
        return self.chains[-1] if self.chains else None

    def get_chain(self, name: str) -> Optional[Chain]:
        """Return the first chain with the given name."""
        for chain in self.chains:
            if chain.name == name:
                return chain
        return None

    def chain_names(self) -> List[str]:
        return [c.name for c in self.chains]

    def builtin_chains(self) -> List[Chain]:
        return [c for c in self.chains if c.is_builtin]

    def user_chains(self) -> List[Chain]:
        return [c for c in self.chains if c.is_user_defined]

    def rule_count(self) -> int:
        """Total number of rules across all chains."""
        return sum(len(c.rules) for c in self.chains)

    def __len__(self) -> int:
        return len(self.chains)

    def __iter__(self) -> Iterator[Chain]:
        return iter(self.chains)

    def __contains__(self, name: object) -> bool:
        return any(c.name == name for c in self.chains)

    def render(self) -> str:
        """Debug rendering of the whole tree. Not a stable format."""
        lines = ["Table {"]
        lines.extend(c.render() for c in self.chains)
        lines.append("}")
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        return self.render()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Table":
        """Create Table from dictionary representation."""
        return cls(chains=[Chain.from_dict(c) for c in data.get("chains", [])])

    def to_dict(self) -> Dict[str, Any]:
        """Convert Table to dictionary representation."""
        return {"chains": [c.to_dict() for c in self.chains]}

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Convert Table to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)
