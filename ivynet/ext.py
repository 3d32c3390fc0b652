"""External values and functions, whose meaning lives outside the net."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

_EXT_VAL_TAG = 4
_RC_BIT = 0x8000
_SWAP_BIT = 0x8000
_U16_MAX = 0xFFFF
_U32_MAX = 0xFFFF_FFFF


@dataclass(frozen=True)
class ExtTy:
    """The type of an external value; the high bit marks reference counting."""

    id: int

    def __post_init__(self) -> None:
        if not 0 <= self.id <= _U16_MAX:
            raise ValueError(f"external type id {self.id} does not fit in 16 bits")

    @classmethod
    def from_id_and_rc(cls, n: int, rc: bool) -> ExtTy:
        return cls(n | (_RC_BIT if rc else 0))

    @property
    def is_rc(self) -> bool:
        return bool(self.id & _RC_BIT)


@dataclass(frozen=True)
class ExtVal:
    """An external value: a 32-bit payload interpreted according to its type."""

    ty: ExtTy
    payload: int

    def __post_init__(self) -> None:
        if not 0 <= self.payload <= _U32_MAX:
            raise ValueError(f"payload {self.payload} does not fit in 32 bits")

    @property
    def bits(self) -> int:
        """The 64-bit representation: payload, type, then the port tag."""
        return self.payload << 32 | self.ty.id << 16 | _EXT_VAL_TAG

    @classmethod
    def from_bits(cls, bits: int) -> ExtVal:
        if bits & 0xFFFF != _EXT_VAL_TAG:
            raise ValueError("bits do not carry the external value tag")
        return cls(ExtTy((bits >> 16) & _U16_MAX), (bits >> 32) & _U32_MAX)

    def as_ty(self, ty: ExtTy) -> int:
        """The payload, after checking that the value has type ``ty``."""
        if self.ty != ty:
            raise TypeError(f"expected external type {ty.id}, found {self.ty.id}")
        return self.payload

    def __repr__(self) -> str:
        return f"ExtVal({self.bits})"


@dataclass(frozen=True)
class ExtFn:
    """A reference to an external function: a 15-bit kind and a swap bit."""

    bits: int

    def __post_init__(self) -> None:
        if not 0 <= self.bits <= _U16_MAX:
            raise ValueError(f"external function bits {self.bits} do not fit in 16 bits")

    @property
    def kind(self) -> int:
        return self.bits & ~_SWAP_BIT

    @property
    def is_swapped(self) -> bool:
        return (self.bits >> 15) == 1

    def swap(self) -> ExtFn:
        """The same function with its two arguments swapped."""
        return ExtFn(self.bits ^ _SWAP_BIT)

    def __repr__(self) -> str:
        return f"ExtFn({self.bits})"


@dataclass
class Extrinsics:
    """The registry of external functions and external value types."""

    MAX_EXT_FN_KIND_COUNT = 0x7FFF
    MAX_LIGHT_EXT_TY_COUNT = 0x7FFF

    _ext_fns: list[Callable[[ExtVal, ExtVal], ExtVal]] = field(default_factory=list)
    _light_ext_ty: int = 0
    _n32_ext_ty: Optional[ExtTy] = None

    def register_ext_fn(self, f: Callable[[ExtVal, ExtVal], ExtVal]) -> ExtFn:
        """Register ``f(a, b)`` as a new external function."""
        if len(self._ext_fns) >= self.MAX_EXT_FN_KIND_COUNT:
            raise OverflowError("maximum number of external functions reached")
        ext_fn = ExtFn(len(self._ext_fns))
        self._ext_fns.append(f)
        return ext_fn

    def register_light_ext_ty(self) -> ExtTy:
        """Register a new unboxed external type."""
        if self._light_ext_ty >= self.MAX_LIGHT_EXT_TY_COUNT:
            raise OverflowError("maximum number of unboxed external types reached")
        ext_ty = ExtTy.from_id_and_rc(self._light_ext_ty, False)
        self._light_ext_ty += 1
        return ext_ty

    def register_n32_ext_ty(self) -> ExtTy:
        """Register the type of 32-bit naturals; allowed only once."""
        if self._n32_ext_ty is not None:
            raise RuntimeError("the N32 external type is already registered")
        self._n32_ext_ty = self.register_light_ext_ty()
        return self._n32_ext_ty

    def call(self, ext_fn: ExtFn, arg0: ExtVal, arg1: ExtVal) -> ExtVal:
        """Apply ``ext_fn`` to two values, honouring its swap bit."""
        kind = ext_fn.kind
        if kind >= len(self._ext_fns):
            raise LookupError(f"no external function with kind {kind}")
        if ext_fn.is_swapped:
            arg0, arg1 = arg1, arg0
        return self._ext_fns[kind](arg0, arg1)

    def ext_val_as_n32(self, val: ExtVal) -> int:
        """The payload of ``val``, which must be of the N32 type."""
        if self._n32_ext_ty is None or val.ty != self._n32_ext_ty:
            raise TypeError("value is not an N32")
        return val.payload