"""The virtual machine that runs compiled modules."""

from __future__ import annotations

import math

from zenlang.addr import high, low, pack, sub_low, with_high, with_low
from zenlang.aiafs import assign_indexed
from zenlang.compute import compute
from zenlang.module import Module
from zenlang.opcodes import BINARY_OPS, Instruction, Op
from zenlang.scope import Scope
from zenlang.value import FunctionRef, VMError, is_number
from zenlang.vmcall import vmcall

MAX_STACK_SIZE = 1000

_U32_MAX = 0xFFFFFFFF
_USIZE_MAX = (1 << 64) - 1
_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1


def _to_index(number) -> int:
    """Saturating conversion of a number to an unsigned index."""
    number = float(number)
    if math.isnan(number) or number <= 0:
        return 0
    if number >= _USIZE_MAX:
        return _USIZE_MAX
    return int(number)


def _to_i64(number) -> int:
    """Saturating conversion of a number to a signed 64-bit integer."""
    number = float(number)
    if math.isnan(number):
        return 0
    if number >= _I64_MAX:
        return _I64_MAX
    if number <= _I64_MIN:
        return _I64_MIN
    return int(number)


class VM:
    """A stack machine executing instructions of loaded modules.

    The program counter packs the module index into its high half and the
    instruction offset into its low half. Errors raise :class:`VMError`; the
    message is also kept in :attr:`error` and stops further stepping.
    """

    def __init__(self, platform=None) -> None:
        self.modules: list[Module] = []
        self.pc = 0
        self.stack: list = []
        self.call_stack: list[int] = []
        self.scopes: list[Scope] = []
        self.error: str | None = None
        self.ret = None
        self.platform = platform
        self._args_start: list[int] = []
        self._args_end: list[int] = []

    # Loading and entry

    def load_module(self, module: Module) -> None:
        """Load ``module`` and resolve its dependencies through the platform."""
        self.modules.append(
            Module(
                name=module.name,
                opcodes=list(module.opcodes),
                functions=list(module.functions),
                dependencies=list(module.dependencies),
            )
        )
        for dependency in module.dependencies:
            if any(loaded.name == dependency for loaded in self.modules):
                return
            if self.platform is None:
                raise VMError(
                    f"unresolved dependency {dependency} (of module {module.name}):"
                    " self.platform is None"
                )
            found = self.platform.get_module(dependency)
            if found is None:
                raise VMError(
                    f"unresolved dependency {dependency} (of module {module.name}): not found"
                )
            self.load_module(found)

    def set_entry_function(self, name: str) -> None:
        """Point the program counter at function ``name`` and open its scope."""
        for index, module in enumerate(self.modules):
            function = module.find_function(name)
            if function is not None:
                self.pc = pack(index, function.addr)
                self.scopes.append(Scope())
                return
        raise VMError("cannot find entry function")

    def function_name_at(self, pc: int) -> str | None:
        """Return the name of the function containing address ``pc``."""
        module_index = high(pc)
        offset = low(pc)
        if module_index >= len(self.modules):
            return None
        for function in reversed(self.modules[module_index].functions):
            if offset >= function.addr:
                return function.name
        return None

    # Running

    def step(self) -> bool:
        """Execute one instruction; return False when there is nothing to run."""
        if self.error is not None:
            return False
        module_index = high(self.pc)
        offset = low(self.pc)
        if module_index >= len(self.modules):
            return False
        opcodes = self.modules[module_index].opcodes
        if offset >= len(opcodes):
            return False
        try:
            self.execute(opcodes[offset])
        except VMError as error:
            self.error = str(error)
            raise
        self.pc = (self.pc & ~_U32_MAX) | ((low(self.pc) + 1) & _U32_MAX)
        return True

    def run(self):
        """Step until execution ends and return the last returned value."""
        while self.step():
            pass
        return self.ret

    def execute(self, instruction: Instruction) -> None:
        """Execute a single instruction against the machine state."""
        binary = BINARY_OPS.get(instruction.op)
        if binary is not None:
            right = self.stack.pop() if self.stack else None
            left = self.stack.pop() if self.stack else None
            self.stack.append(compute(left, right, binary))
            return
        handler = _DISPATCH[instruction.op]
        handler(self, *instruction.args)

    # Helpers

    def _check_overflow(self) -> None:
        if len(self.call_stack) >= MAX_STACK_SIZE or len(self.stack) >= MAX_STACK_SIZE:
            raise VMError("call stack overflow")

    def _push(self, value) -> None:
        self.stack.append(value)
        self._check_overflow()

    def _pop(self, message: str):
        if not self.stack:
            raise VMError(message)
        return self.stack.pop()

    def _pop_many(self, count: int, message: str) -> list:
        values = []
        for _ in range(count):
            values.append(self._pop(message))
        values.reverse()
        return values

    def _jump(self, target: int) -> None:
        self.pc = with_low(self.pc, target - 1)

    def _current_scope(self, message: str) -> Scope:
        if not self.scopes:
            raise VMError(message)
        return self.scopes[-1]

    # Instruction handlers

    def _call(self) -> None:
        target = self._pop("call: stack is empty")
        if not isinstance(target, FunctionRef):
            raise VMError("call: value on stack is not a function reference")
        self.call_stack.append(self.pc)
        self._check_overflow()
        self.pc = sub_low(target.addr, 1)
        self.scopes.append(Scope())
        if not self._args_start or not self._args_end:
            raise VMError("call: no argument frame")
        provided = self._args_end.pop() - self._args_start.pop()
        if provided != target.args_count:
            raise VMError(
                f"call: expected exactly {target.args_count} arguments, but provided"
                f" {provided} (trying to call a function at"
                f" {low(self.pc)}:{high(self.pc)})"
            )

    def _vmcall(self, index: int) -> None:
        vmcall(self, index)

    def _dynvmcall(self) -> None:
        value = self._pop("dynvmcall failed: no more values on stack")
        if not is_number(value):
            raise VMError("dynvmcall failed: value on stack is not a number")
        vmcall(self, _to_i64(value) & 0xFF)

    def _loadcn(self, number) -> None:
        self._push(float(number))

    def _loadcnu(self) -> None:
        self._push(None)

    def _loadcb(self, flag) -> None:
        self._push(bool(flag))

    def _loadcs(self, text) -> None:
        self._push(str(text))

    def _loadv(self, name: str) -> None:
        if self.scopes and name in self.scopes[-1]:
            self._push(self.scopes[-1].get(name))
            return
        for index, module in enumerate(self.modules):
            function = module.find_function(name)
            if function is not None:
                self._push(FunctionRef(pack(index, function.addr), function.args_count))
                return
        self.stack.append(None)

    def _storev(self, name: str) -> None:
        value = self._pop("storev failed: no value in stack")
        self._current_scope("storev failed: scopes is empty").set(name, value)

    def _pushret(self) -> None:
        self.stack.append(self.ret)

    def _cafse(self, count: int) -> None:
        self.stack.append(self._pop_many(count, "cafse failed: no more values on stack"))

    def _iafs(self) -> None:
        index = self._pop("iafs failed: no more values on stack for index")
        container = self._pop("iafs failed: no more values on stack for array")
        if isinstance(container, list) and is_number(index):
            position = _to_index(index)
            self.stack.append(container[position] if position < len(container) else None)
            return
        if isinstance(container, dict) and isinstance(index, str):
            self.stack.append(container.get(index))
            return
        raise VMError("iafs failed: invalid operand types")

    def _cdfse(self, names) -> None:
        values = self._pop_many(len(names), "cdfse failed: no more values on stack")
        self.stack.append(dict(zip(names, values)))

    def _aiafs(self, name: str, indexes_count: int) -> None:
        indexes = self._pop_many(
            indexes_count, "aiafs failed: no more values on stack for index"
        )
        set_value = self._pop("aiafs failed: no more values on stack for array")
        scope = self._current_scope("aiafs failed: no scopes")
        if name not in scope:
            raise VMError(f"aiafs failed: no variable named {name}")
        scope.set(name, assign_indexed(scope.get(name), set_value, indexes))

    def _bfas(self) -> None:
        self._args_start.append(len(self.stack))

    def _efas(self) -> None:
        self._args_end.append(len(self.stack))

    def _pop_op(self) -> None:
        self._pop("pop failed: no value in stack")

    def _bst(self, target: int) -> None:
        value = self._pop("bst failed: no value on stack")
        if isinstance(value, bool):
            if value:
                self._jump(target)
            return
        if is_number(value):
            if value != 0.0:
                self._jump(target)
            return
        raise VMError("bst failed: value on stack is not of an acceptable type")

    def _bsnn(self, target: int) -> None:
        value = self._pop("bsnn failed: no value on stack")
        if value is not None:
            self._jump(target)

    def _br(self, target: int) -> None:
        self._jump(target)

    def _ret(self) -> None:
        if self.stack:
            self.ret = self.stack.pop()
        if self.scopes:
            self.scopes.pop()
        if self.call_stack:
            self.pc = self.call_stack.pop()
        else:
            self.pc = with_high(self.pc, _U32_MAX)


_DISPATCH = {
    Op.CALL: VM._call,
    Op.VMCALL: VM._vmcall,
    Op.DYNVMCALL: VM._dynvmcall,
    Op.LOADCN: VM._loadcn,
    Op.LOADCNU: VM._loadcnu,
    Op.LOADCB: VM._loadcb,
    Op.LOADCS: VM._loadcs,
    Op.LOADV: VM._loadv,
    Op.STOREV: VM._storev,
    Op.PUSHRET: VM._pushret,
    Op.CAFSE: VM._cafse,
    Op.IAFS: VM._iafs,
    Op.CDFSE: VM._cdfse,
    Op.AIAFS: VM._aiafs,
    Op.BFAS: VM._bfas,
    Op.EFAS: VM._efas,
    Op.POP: VM._pop_op,
    Op.BST: VM._bst,
    Op.BSNN: VM._bsnn,
    Op.BR: VM._br,
    Op.RET: VM._ret,
}