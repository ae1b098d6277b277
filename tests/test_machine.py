import pytest

from zenlang.addr import pack
from zenlang.machine import VM
from zenlang.module import Module, ModuleFunction
from zenlang.opcodes import Instruction, Op
from zenlang.value import FunctionRef, VMError
from zenlang.vmcall import Platform


def ins(op, *args):
    return Instruction(op, args)


def make_module(*instructions, functions=None, name="main", dependencies=()):
    return Module(
        name=name,
        opcodes=list(instructions),
        functions=functions if functions is not None else [ModuleFunction("main", 0, 0)],
        dependencies=list(dependencies),
    )


def start(*instructions, functions=None, platform=None):
    vm = VM(platform)
    vm.load_module(make_module(*instructions, functions=functions))
    vm.set_entry_function("main")
    return vm


class RecordingPlatform(Platform):
    def __init__(self, modules=None):
        self.lines = []
        self.modules = modules or {}

    def println(self, text):
        self.lines.append(text)

    def get_module(self, name):
        return self.modules.get(name)


def test_return_number():
    vm = start(ins(Op.LOADCN, 1.23), ins(Op.RET))
    assert vm.run() == 1.23
    assert vm.error is None


def test_return_string():
    vm = start(ins(Op.LOADCS, "Hello"), ins(Op.RET))
    assert vm.run() == "Hello"


def test_return_boolean_and_null():
    assert start(ins(Op.LOADCB, True), ins(Op.RET)).run() is True
    assert start(ins(Op.LOADCNU), ins(Op.RET)).run() is None


@pytest.mark.parametrize(
    "a, b, c, d, op, expected",
    [
        (2, 1, 5, 2, Op.BOR, 7.0),
        (2, 1, 5, 2, Op.BAND, 3.0),
        (120, 3, 1, 1, Op.BSHR, 30.0),
        (120, 3, 1, 1, Op.BSHL, 492.0),
    ],
)
def test_bit_operations(a, b, c, d, op, expected):
    vm = start(
        ins(Op.LOADCN, a),
        ins(Op.LOADCN, b),
        ins(Op.ADD),
        ins(Op.LOADCN, c),
        ins(Op.LOADCN, d),
        ins(Op.ADD),
        ins(op),
        ins(Op.RET),
    )
    assert vm.run() == expected


def test_equality_of_sums():
    vm = start(
        ins(Op.LOADCN, 2),
        ins(Op.LOADCN, 1),
        ins(Op.ADD),
        ins(Op.LOADCN, 1),
        ins(Op.LOADCN, 2),
        ins(Op.ADD),
        ins(Op.EQ),
        ins(Op.RET),
    )
    assert vm.run() is True


def test_while_loop():
    vm = start(
        ins(Op.LOADCN, 2),
        ins(Op.STOREV, "x"),
        ins(Op.LOADCN, 0),
        ins(Op.STOREV, "y"),
        ins(Op.LOADV, "x"),
        ins(Op.LOADCN, 0),
        ins(Op.GT),
        ins(Op.BST, 9),
        ins(Op.BR, 18),
        ins(Op.LOADV, "x"),
        ins(Op.LOADCN, 1),
        ins(Op.SUB),
        ins(Op.STOREV, "x"),
        ins(Op.LOADV, "y"),
        ins(Op.LOADCN, 1),
        ins(Op.ADD),
        ins(Op.STOREV, "y"),
        ins(Op.BR, 4),
        ins(Op.LOADV, "y"),
        ins(Op.RET),
    )
    assert vm.run() == 2.0


def _add_program(arguments):
    functions = [ModuleFunction("add", 0, 2), ModuleFunction("main", 6, 0)]
    body = [
        ins(Op.STOREV, "y"),
        ins(Op.STOREV, "x"),
        ins(Op.LOADV, "x"),
        ins(Op.LOADV, "y"),
        ins(Op.ADD),
        ins(Op.RET),
        ins(Op.BFAS),
        *(ins(Op.LOADCN, value) for value in arguments),
        ins(Op.EFAS),
        ins(Op.LOADV, "add"),
        ins(Op.CALL),
        ins(Op.PUSHRET),
        ins(Op.RET),
    ]
    return start(*body, functions=functions)


def test_call_with_arguments():
    vm = _add_program([42, 69])
    assert vm.run() == 111.0
    assert vm.call_stack == []
    assert vm.scopes == []


def test_call_with_wrong_argument_count():
    vm = _add_program([42])
    with pytest.raises(VMError, match="expected exactly 2 arguments, but provided 1"):
        vm.run()


def test_call_non_function():
    vm = start(ins(Op.LOADCN, 1), ins(Op.CALL))
    with pytest.raises(VMError, match="not a function reference"):
        vm.run()


def test_division_by_zero_stops_machine():
    vm = start(ins(Op.LOADCN, 1), ins(Op.LOADCN, 0), ins(Op.DIV), ins(Op.RET))
    with pytest.raises(VMError, match="division by 0"):
        vm.run()
    assert vm.error == "division by 0"
    assert vm.step() is False


def test_dictionary_set_and_get():
    vm = start(
        ins(Op.LOADCN, 0),
        ins(Op.LOADCN, 69),
        ins(Op.CDFSE, ("a", "b")),
        ins(Op.STOREV, "x"),
        ins(Op.LOADCN, 42),
        ins(Op.LOADCS, "a"),
        ins(Op.AIAFS, "x", 1),
        ins(Op.LOADV, "x"),
        ins(Op.LOADCS, "a"),
        ins(Op.IAFS),
        ins(Op.LOADV, "x"),
        ins(Op.LOADCS, "b"),
        ins(Op.IAFS),
        ins(Op.ADD),
        ins(Op.RET),
    )
    assert vm.run() == 111.0
    assert vm.scopes == []


def test_nested_array_set():
    vm = start(
        ins(Op.LOADCN, 0),
        ins(Op.LOADCN, 0),
        ins(Op.CAFSE, 1),
        ins(Op.CAFSE, 2),
        ins(Op.STOREV, "x"),
        ins(Op.LOADCN, 69),
        ins(Op.LOADCN, 1),
        ins(Op.LOADCN, 0),
        ins(Op.AIAFS, "x", 2),
        ins(Op.LOADV, "x"),
        ins(Op.RET),
    )
    assert vm.run() == [0.0, [69.0]]


def test_iafs_out_of_range_is_null():
    vm = start(
        ins(Op.LOADCN, 5),
        ins(Op.CAFSE, 1),
        ins(Op.LOADCN, 3),
        ins(Op.IAFS),
        ins(Op.RET),
    )
    assert vm.run() is None


def test_iafs_invalid_operands():
    vm = start(ins(Op.LOADCN, 5), ins(Op.LOADCS, "a"), ins(Op.IAFS))
    with pytest.raises(VMError, match="iafs failed: invalid operand types"):
        vm.run()


def test_aiafs_unknown_variable():
    vm = start(ins(Op.LOADCN, 1), ins(Op.LOADCN, 0), ins(Op.AIAFS, "x", 1))
    with pytest.raises(VMError, match="aiafs failed: no variable named x"):
        vm.run()


@pytest.mark.parametrize("is_null, expected", [(True, 0.0), (False, 1.0)])
def test_bsnn_branches_on_non_null(is_null, expected):
    first = ins(Op.LOADCNU) if is_null else ins(Op.LOADCN, 1)
    vm = start(
        first,
        ins(Op.BSNN, 4),
        ins(Op.LOADCN, 0),
        ins(Op.RET),
        ins(Op.LOADCN, 1),
        ins(Op.RET),
    )
    assert vm.run() == expected


def test_bst_rejects_string():
    vm = start(ins(Op.LOADCS, "yes"), ins(Op.BST, 0))
    with pytest.raises(VMError, match="not of an acceptable type"):
        vm.run()


def test_loadv_unknown_name_is_null():
    vm = start(ins(Op.LOADV, "missing"), ins(Op.RET))
    assert vm.run() is None


def test_loadv_function_reference():
    functions = [ModuleFunction("main", 0, 0), ModuleFunction("helper", 2, 3)]
    vm = start(ins(Op.LOADV, "helper"), ins(Op.RET), ins(Op.RET), functions=functions)
    assert vm.run() == FunctionRef(pack(0, 2), 3)


def test_value_stack_overflow():
    vm = start(ins(Op.LOADCN, 1), ins(Op.BR, 0))
    with pytest.raises(VMError, match="call stack overflow"):
        vm.run()
    assert len(vm.stack) == 1000


def test_recursion_overflow():
    vm = start(
        ins(Op.BFAS),
        ins(Op.EFAS),
        ins(Op.LOADV, "main"),
        ins(Op.CALL),
        ins(Op.RET),
    )
    with pytest.raises(VMError, match="call stack overflow"):
        vm.run()
    assert len(vm.call_stack) == 1000


def test_pop_on_empty_stack():
    vm = start(ins(Op.POP))
    with pytest.raises(VMError, match="pop failed: no value in stack"):
        vm.run()


def test_storev_without_scope():
    vm = VM()
    vm.stack.append(1.0)
    with pytest.raises(VMError, match="storev failed: scopes is empty"):
        vm.execute(ins(Op.STOREV, "x"))


def test_missing_entry_function():
    vm = VM()
    vm.load_module(make_module(ins(Op.RET)))
    with pytest.raises(VMError, match="cannot find entry function"):
        vm.set_entry_function("other")


def test_unresolved_dependency_without_platform():
    vm = VM()
    with pytest.raises(VMError, match="unresolved dependency lib .*self.platform is None"):
        vm.load_module(make_module(ins(Op.RET), dependencies=["lib"]))


def test_unresolved_dependency_not_found():
    vm = VM(RecordingPlatform())
    with pytest.raises(VMError, match="unresolved dependency lib .*not found"):
        vm.load_module(make_module(ins(Op.RET), dependencies=["lib"]))


def test_dependency_loaded_from_platform():
    library = make_module(
        ins(Op.LOADCS, "lib"),
        ins(Op.RET),
        functions=[ModuleFunction("libfn", 0, 0)],
        name="lib",
    )
    vm = VM(RecordingPlatform({"lib": library}))
    vm.load_module(make_module(ins(Op.RET), dependencies=["lib"]))
    assert [module.name for module in vm.modules] == ["main", "lib"]
    vm.set_entry_function("libfn")
    assert vm.run() == "lib"


def test_function_name_at():
    functions = [ModuleFunction("first", 0, 0), ModuleFunction("second", 3, 0)]
    vm = VM()
    vm.load_module(make_module(*(ins(Op.RET) for _ in range(5)), functions=functions))
    assert vm.function_name_at(pack(0, 1)) == "first"
    assert vm.function_name_at(pack(0, 4)) == "second"
    assert vm.function_name_at(pack(1, 0)) is None


def test_vmcall_println_through_platform():
    platform = RecordingPlatform()
    vm = start(
        ins(Op.LOADCS, "Hello"),
        ins(Op.VMCALL, 2),
        ins(Op.LOADCNU),
        ins(Op.RET),
        platform=platform,
    )
    vm.run()
    assert platform.lines == ["Hello"]


def test_dynvmcall_array_size():
    vm = start(
        ins(Op.LOADCN, 1),
        ins(Op.LOADCN, 2),
        ins(Op.CAFSE, 2),
        ins(Op.LOADCN, 5),
        ins(Op.DYNVMCALL),
        ins(Op.RET),
    )
    assert vm.run() == 2.0


def test_dynvmcall_requires_number():
    vm = start(ins(Op.LOADCS, "5"), ins(Op.DYNVMCALL))
    with pytest.raises(VMError, match="value on stack is not a number"):
        vm.run()


def test_invalid_vmcall_index():
    vm = start(ins(Op.VMCALL, 200))
    with pytest.raises(VMError, match="invalid vmcall index 200"):
        vm.run()


def test_step_without_modules():
    vm = VM()
    assert vm.step() is False
    assert vm.run() is None