# zenlang

A small stack-based virtual machine for the ZenLang scripting language. It runs
modules made of instructions. A pluggable `Platform` gives running code access
to printing, input, files and module lookup.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Concepts

- **Values** are plain Python objects. Numbers are `float`, strings are `str`,
  booleans are `bool`, arrays are `list`, dictionaries are `dict` with string
  keys in insertion order, and `null` is `None`. A function reference is a
  `zenlang.value.FunctionRef` holding a packed address and an argument count.
- **Addresses** pack a module index into the high 32 bits and an instruction
  offset into the low 32 bits. `zenlang.addr` has `pack`, `high`, `low`,
  `with_high`, `with_low` and wrapping `add_low`, `add_high`, `sub_low`,
  `sub_high`.
- **Instructions** (`zenlang.opcodes.Instruction`) pair an `Op` with a tuple of
  operands, such as a constant to load, a variable name or a branch target.
  Giving the wrong number of operands raises `ValueError`. `str()` of an
  instruction gives a readable form such as `loadcn 2`.
- **Modules** (`zenlang.module.Module`) hold a `name`, a list of `opcodes`
  (instructions), the `functions` defined in them (`ModuleFunction` with `name`,
  `addr` and `args_count`) and the names of their `dependencies`.
  `Module.find_function(name)` returns the first function of that name.
- **Scopes** (`zenlang.scope.Scope`) hold the variables of one call.
- **The VM** (`zenlang.machine.VM`) loads modules, picks an entry function and
  executes instructions with `step()`, or all of them with `run()`, which
  returns the last returned value. `function_name_at(pc)` names the function
  containing an address.
- **Platform** (`zenlang.vmcall.Platform`) is the host interface. The default
  writes to standard output, reads lines from standard input, reads and writes
  local files and finds no modules. Subclass it to change any of that, and pass
  an instance as `VM(platform)`.

## Example

```python
from zenlang.machine import VM
from zenlang.module import Module, ModuleFunction
from zenlang.opcodes import Instruction, Op

module = Module(
    name="main",
    opcodes=[
        Instruction(Op.LOADCN, (2.0,)),
        Instruction(Op.LOADCN, (3.0,)),
        Instruction(Op.ADD),
        Instruction(Op.RET),
    ],
    functions=[ModuleFunction("main", 0, 0)],
)

vm = VM()
vm.load_module(module)
vm.set_entry_function("main")
print(vm.run())  # 5.0
```

## Errors

Failures inside the VM raise `zenlang.value.VMError`. When a step fails, the
message is also stored in `vm.error` and further calls to `step()` return
`False`. `load_module` raises `VMError` for a dependency that cannot be
resolved, and `set_entry_function` raises it when no function has that name.
Calls are limited to a stack depth of 1000 (`zenlang.machine.MAX_STACK_SIZE`).

## Operations

`zenlang.compute.compute(left, right, op)` applies a `BinaryOp`: arithmetic
(division by zero is an error), integer shifts and bitwise and/or (also
defined on two booleans), equality on any values and ordering on numbers.
`zenlang.aiafs.assign_indexed(value, set_to, indexes)` returns a copy of a
nested array or dictionary with one element replaced; an array index equal to
the length appends.

## Host calls

`zenlang.vmcall.vmcall(vm, index)` performs a numbered host call on the VM's
stack: print (1), println (2), read a line (3), load a module by name (4),
array size, push, pop, remove and insert (5 to 9), string split (10), file
reading as bytes or text (11, 12), file writing from bytes or text (13, 14),
`ord` and `chr` (15, 16), turning a value into text (17) and parsing a number
(18). The number parser pushes a result dictionary with `_ok` and `_err`
entries, built with `zenlang.value.ok` and `zenlang.value.err`.

Values are rendered with `zenlang.value.display`, which prints arrays as
`[1, "a"]` and dictionaries as `{key = 1}`.

## What it does not do

This package has no tokenizer, parser or compiler, and no command-line program:
it does not turn ZenLang source text into modules. Modules must be built from
`Instruction` objects, as in the example, or supplied by a `Platform`. There is
also no built-in standard library module; `Platform.get_module` finds nothing
unless a subclass provides it.