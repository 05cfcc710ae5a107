# oberonc

Back-end building blocks of a compiler for a teaching subset of Oberon:
operator codes, syntax tree nodes, compile-time folding of constant binary
expressions, and a code generator that writes SPARC assembly.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## What is in the package

- `oberonc.ops` – the operator codes (`Op`) and helpers `op_symbol`,
  `is_relation`, `is_add_op` and `is_mul_op`; `get_op` and `get_type` split a
  node type into its operator field and its kind field; `is_readonly` and
  `is_exportable` test the flag bits.
- `oberonc.ast` – `ASTNode`, a tree node with a fixed number of child slots.
  It is indexable (an index past the slots gives `None`), iterable and sized;
  children are added with `add_child`, `add_leaf` and `add_children_of`, and
  `add_child` raises `IndexError` when no slot is free.
- `oberonc.evaluate` – folding of constant operands: `evaluate_int` (32-bit
  wrap-around, division truncating towards zero), `evaluate_real`,
  `evaluate_bool`, and `evaluate`, which picks one by the operand types and
  returns `None` when the types do not mix.
- `oberonc.machine` – `Register`, `RegisterKind`, `RegisterBank`,
  `Location`, `Procedure` and the `Sparc` target, which writes loads, stores,
  arithmetic, compares and branches, `IF`/`ELSE`/`WHILE`/`EXIT` labels,
  short-circuit `OR`/`&`, calls and procedure prologues and epilogues to a
  text stream. `Sparc.standard()` builds one with the usual register banks,
  writing to an in-memory buffer unless a stream is given.
- `oberonc.codegen` – `CodeGenerator`, which drives a machine: it opens the
  target file and writes the header and footer (`begin`, `end`, `abort`),
  allocates frame offsets (`allocate`) and record field offsets
  (`open_record`, `allocate_field`, `close_record`), emits string constants,
  binary operations, assignments (whole arrays through `memcpy`), negation,
  array indexing, `NEW` through `calloc`, and pointer dereference.

## A short example

```python
from oberonc.ops import Op, op_symbol
from oberonc.evaluate import evaluate

print(op_symbol(Op.DIVIDE))         # DIV
print(evaluate(7, Op.DIVIDE, 2))    # 3
print(evaluate(True, Op.OR, False)) # True
```

Emitting assembly into memory:

```python
from oberonc.machine import Location, Sparc

sparc = Sparc.standard()
x = Location("x", base=sparc.frame_pointer, offset=8)
reg = sparc.get_reg()
sparc.emit_load(x, reg)
sparc.free_reg(reg)
print(sparc.out.getvalue())
```

Writing an assembly file:

```python
from oberonc.codegen import CodeGenerator
from oberonc.machine import Sparc

codegen = CodeGenerator(Sparc.standard(), target="out.s")
codegen.begin()
offset = codegen.allocate(4)   # 4
codegen.emit_save_string("hello")
codegen.end()
```

## What the package does not do

The package has no lexer, no parser, no semantic checker and no
command-line compiler. It does not read Oberon source text: the syntax tree,
the constant values and the storage locations handed to the code generator
have to be built by the caller. Nor does it assemble or link the assembly
it writes.