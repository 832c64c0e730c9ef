"""Hierarchical simulation parameters.

Classes
-------
ParameterList
    Nested key/value configuration with typed look-ups and sublists.
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping


class ParameterList:
    """Named, nested parameter collection.

    Values are scalars, strings, sequences or nested
    :class:`ParameterList` instances (sublists).  Plain dictionaries are
    converted to sublists on insertion.

    Args:
        name: Label used in error messages.
        **kwargs: Initial parameters.

    Example::

        plist = ParameterList.from_dict({
            "Gravity x": 0.0, "Gravity y": 0.0, "Gravity z": -9.81,
            "Constant pressure": 101325.0,
            "Number of mesh blocks": 1,
            "Mesh block 1": {"Mesh block ID": 2, "Constant temperature": 273.15},
        })
        plist.get_float("Gravity z")          # -9.81
        plist.sublist("Mesh block 1").get_int("Mesh block ID")  # 2
    """

    def __init__(self, name: str = "ANONYMOUS", **kwargs: Any) -> None:
        self.name = name
        self._params: dict[str, Any] = {}
        for key, value in kwargs.items():
            self.set(key, value)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], name: str = "ANONYMOUS") -> "ParameterList":
        """Build a parameter list from a (possibly nested) mapping."""
        plist = cls(name=name)
        for key, value in data.items():
            plist.set(key, value)
        return plist

    def to_dict(self) -> dict[str, Any]:
        """Nested plain-dict representation."""
        return {
            k: v.to_dict() if isinstance(v, ParameterList) else v
            for k, v in self._params.items()
        }

    # dict-like access -----------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        try:
            return self._params[key]
        except KeyError:
            raise KeyError(
                f"Parameter '{key}' is missing from parameter list '{self.name}'."
            ) from None

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return key in self._params

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*; mappings become sublists."""
        if isinstance(value, Mapping):
            value = ParameterList.from_dict(value, name=key)
        self._params[key] = value

    def is_parameter(self, key: str) -> bool:
        """True if *key* holds a value (not a sublist)."""
        return key in self._params and not isinstance(self._params[key], ParameterList)

    def is_sublist(self, key: str) -> bool:
        return isinstance(self._params.get(key), ParameterList)

    def get(self, key: str, default: Any = None) -> Any:
        """Return parameter *key*, or *default* if absent."""
        return self._params.get(key, default)

    def get_float(self, key: str, default: float | None = None) -> float:
        """Return *key* as a float.

        Raises:
            KeyError: If *key* is absent and no default is given.
        """
        if key not in self._params and default is not None:
            return float(default)
        return float(self[key])

    def get_int(self, key: str, default: int | None = None) -> int:
        """Return *key* as an int.

        Raises:
            KeyError: If *key* is absent and no default is given.
        """
        if key not in self._params and default is not None:
            return int(default)
        return int(self[key])

    def sublist(self, key: str) -> "ParameterList":
        """Return the sublist *key*, creating an empty one if absent.

        Raises:
            ValueError: If *key* holds a plain value.
        """
        if key not in self._params:
            self._params[key] = ParameterList(name=key)
        value = self._params[key]
        if not isinstance(value, ParameterList):
            raise ValueError(f"Parameter '{key}' in '{self.name}' is not a sublist.")
        return value

    def __repr__(self) -> str:
        return f"ParameterList(name={self.name!r}, keys={list(self._params)})"
