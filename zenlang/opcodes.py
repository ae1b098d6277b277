"""Instruction set of the virtual machine."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum

from zenlang.compute import BinaryOp
from zenlang.value import display, is_number


class Op(Enum):
    """Operation codes."""

    CALL = "call"
    VMCALL = "vmcall"
    DYNVMCALL = "dynvmcall"
    LOADCN = "loadcn"
    LOADCNU = "loadcnu"
    LOADCB = "loadcb"
    LOADCS = "loadcs"
    LOADV = "loadv"
    STOREV = "storev"
    PUSHRET = "pushret"
    CAFSE = "cafse"
    IAFS = "iafs"
    CDFSE = "cdfse"
    AIAFS = "aiafs"
    BFAS = "bfas"
    EFAS = "efas"
    POP = "pop"
    BST = "bst"
    BSNN = "bsnn"
    BR = "br"
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    EQ = "eq"
    NEQ = "neq"
    LT = "lt"
    GT = "gt"
    LE = "le"
    GE = "ge"
    BSHR = "bshr"
    BSHL = "bshl"
    BAND = "band"
    BOR = "bor"
    RET = "ret"


_ARITY = {
    Op.VMCALL: 1,
    Op.LOADCN: 1,
    Op.LOADCB: 1,
    Op.LOADCS: 1,
    Op.LOADV: 1,
    Op.STOREV: 1,
    Op.CAFSE: 1,
    Op.CDFSE: 1,
    Op.AIAFS: 2,
    Op.BST: 1,
    Op.BSNN: 1,
    Op.BR: 1,
}

BINARY_OPS = {
    Op.ADD: BinaryOp.PLUS,
    Op.SUB: BinaryOp.MINUS,
    Op.MUL: BinaryOp.MUL,
    Op.DIV: BinaryOp.DIV,
    Op.EQ: BinaryOp.EQ,
    Op.NEQ: BinaryOp.NEQ,
    Op.LT: BinaryOp.LT,
    Op.GT: BinaryOp.GT,
    Op.LE: BinaryOp.LE,
    Op.GE: BinaryOp.GE,
    Op.BSHR: BinaryOp.BITSHR,
    Op.BSHL: BinaryOp.BITSHL,
    Op.BAND: BinaryOp.BITAND,
    Op.BOR: BinaryOp.BITOR,
}


def _freeze(arg):
    if isinstance(arg, (list, tuple)):
        return tuple(_freeze(item) for item in arg)
    return arg


def _format_arg(arg) -> str:
    if isinstance(arg, bool):
        return "true" if arg else "false"
    if isinstance(arg, float) or (is_number(arg) and not isinstance(arg, int)):
        return display(arg)
    if isinstance(arg, str):
        return json.dumps(arg)
    if isinstance(arg, tuple):
        return "[" + ", ".join(_format_arg(item) for item in arg) + "]"
    return str(arg)


@dataclass(frozen=True)
class Instruction:
    """One operation with its operands."""

    op: Op
    args: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", _freeze(self.args))
        expected = _ARITY.get(self.op, 0)
        if len(self.args) != expected:
            raise ValueError(
                f"{self.op.value} takes {expected} operand(s), got {len(self.args)}"
            )

    def __str__(self) -> str:
        return " ".join([self.op.value, *(_format_arg(arg) for arg in self.args)])