import io
from types import SimpleNamespace

import pytest

from oberonc.codegen import CodeGenerator
from oberonc.machine import Location, Sparc
from oberonc.ops import Op

INT = SimpleNamespace(is_bool=False, is_array=False)
BOOL = SimpleNamespace(is_bool=True, is_array=False)
ARRAY = SimpleNamespace(is_bool=False, is_array=True)


@pytest.fixture
def gen(tmp_path):
    return CodeGenerator(Sparc.standard(), str(tmp_path / "out.s"), log=io.StringIO())


def var(gen, name, offset, width=4, type=INT):
    return Location(name, width, base=gen.machine.frame_pointer, offset=offset, type=type)


def text(gen):
    return gen.machine.out.getvalue()


def test_begin_and_end_write_header_and_footer(tmp_path):
    target = tmp_path / "prog.s"
    g = CodeGenerator(Sparc.standard(), str(target), log=io.StringIO(), identity="testid")
    g.begin()
    g.machine.emit_text_section()
    g.end()
    content = target.read_text(encoding="latin-1")
    assert content.startswith(f'\t.file "{target}"\n')
    assert '.TRUE:\t.asciz\t"TRUE"' in content
    assert '.FALSE:\t.asciz\t"FALSE"' in content
    assert '.section\t".text"' in content
    assert content.endswith('\t.ident\t"testid"\n')


def test_abort_removes_target(tmp_path):
    target = tmp_path / "prog.s"
    log = io.StringIO()
    g = CodeGenerator(Sparc.standard(), str(target), log=log)
    g.begin()
    g.abort()
    assert not target.exists()
    assert g.aborted
    assert "Aborting Code Generation" in log.getvalue()
    g.machine.emit_text_section()
    g.end()
    assert not target.exists()


def test_begin_with_unopenable_target_aborts(tmp_path):
    log = io.StringIO()
    target = tmp_path / "missing" / "x.s"
    g = CodeGenerator(Sparc.standard(), str(target), log=log)
    g.begin()
    assert g.aborted
    assert f"unable to open target file '{target}'." in log.getvalue()


def test_word_allocations_are_aligned_and_increasing(gen):
    offsets = [gen.allocate(4) for _ in range(4)]
    assert offsets == sorted(set(offsets))
    assert all(offset % 4 == 0 for offset in offsets)
    assert gen.scope_offset == offsets[-1]


def test_word_after_byte_is_aligned(gen):
    byte = gen.allocate(1)
    word = gen.allocate(4)
    assert word > byte
    assert word % 4 == 0


def test_set_scope_pointer_accumulates_global_offset(gen):
    gen.set_scope_pointer(gen.machine.global_pointer)
    gen.allocate(4)
    last = gen.allocate(4)
    gen.set_scope_pointer(gen.machine.frame_pointer)
    assert gen.global_offset == last
    assert gen.scope_offset == 0
    assert gen.scope_pointer == gen.machine.frame_pointer


def test_record_fields(gen):
    gen.open_record()
    assert gen.in_record
    first = gen.allocate_field(4)
    second = gen.allocate_field(4)
    third = gen.allocate_field(4)
    assert first == 0
    assert first < second < third
    gen.close_record()
    assert not gen.in_record


def test_record_errors(gen):
    with pytest.raises(RuntimeError):
        gen.allocate_field(4)
    with pytest.raises(RuntimeError):
        gen.close_record()


def test_newline_string_emitted_once(gen):
    assert gen.emit_save_string("\n") == ".NEWLINE"
    assert gen.emit_save_string("\n") == ".NEWLINE"
    assert text(gen).count(".NEWLINE:") == 1


def test_string_labels_are_distinct(gen):
    a = gen.emit_save_string("hello")
    b = gen.emit_save_string("world")
    assert a.startswith(".LLC") and b.startswith(".LLC")
    assert a != b
    assert f'{a}:\n\t.asciz\t"hello"\n' in text(gen)


def test_binary_relation_stores_flag(gen):
    result = var(gen, "r", 12, width=1, type=BOOL)
    gen.emit_binary_operation(result, var(gen, "a", 4), Op.LT, var(gen, "b", 8))
    out = text(gen)
    assert "\tcmp\t" in out
    assert "\tbge\t.LL" in out
    assert "\tclr\t%l7\n" in out
    assert "! saving to r" in out
    assert len(gen.machine.outputs) == 6
    assert len(gen.machine.registers) == 8


def test_binary_plus_stores_sum(gen):
    result = var(gen, "r", 12)
    gen.emit_binary_operation(result, var(gen, "a", 4), Op.PLUS, var(gen, "b", 8))
    out = text(gen)
    assert "\tadd\t" in out
    assert "! load: a" in out and "! load: b" in out
    assert "! saving to r" in out
    assert "clr" not in out
    assert len(gen.machine.outputs) == 6


def test_scalar_assignment(gen):
    gen.emit_assignment(var(gen, "x", 4), var(gen, "y", 8))
    out = text(gen)
    assert "! load: y" in out
    assert "! saving to x" in out
    assert len(gen.machine.registers) == 8


def test_array_assignment_copies_memory(gen):
    lhs = var(gen, "a", 40, width=40, type=ARRAY)
    rhs = var(gen, "b", 80, width=40, type=ARRAY)
    gen.emit_assignment(lhs, rhs)
    out = text(gen)
    assert "\tcall\tmemcpy,3\n" in out
    assert "! load address: a" in out and "! load address: b" in out
    assert len(gen.machine.outputs) == 6


def test_negation_of_boolean_and_integer(gen):
    gen.emit_negation(var(gen, "f", 4, width=1, type=BOOL), var(gen, "g", 8, width=1, type=BOOL))
    assert "\txor\t" in text(gen)
    assert "\tneg\t" not in text(gen)
    gen.emit_negation(var(gen, "i", 12), var(gen, "j", 16))
    assert "\tneg\t" in text(gen)


def test_new_calls_allocator(gen):
    ptr = var(gen, "p", 4)
    gen.emit_new(ptr, 12)
    out = text(gen)
    assert "\tcall\tcalloc,1\n" in out
    assert "! saving to p" in out
    assert len(gen.machine.outputs) == 6


def test_pointer_reference_restores_result(gen):
    base = var(gen, "p", 4)
    field = Location("f", 1, offset=4)
    result = var(gen, "t", 8, width=1, type=BOOL)
    gen.emit_pointer_reference(base, field, result)
    out = text(gen)
    assert result.width == 1
    assert result.reference is True
    assert "\tst\t" in out
    assert "\tstb\t" not in out
    assert len(gen.machine.registers) == 8


def test_save_procedure_argument_variants(gen):
    flag = var(gen, "b", 4, width=1, type=BOOL)
    gen.emit_save_procedure_argument(flag, None, True)
    assert "set\t.TRUE," in text(gen)
    assert "set\t.FALSE," in text(gen)
    param = var(gen, "x", 8)
    param.reference = True
    gen.emit_save_procedure_argument(var(gen, "y", 12), param)
    assert "! load address: y" in text(gen)
    gen.emit_save_procedure_argument(var(gen, "z", 16), None)
    assert "! load: z" in text(gen)


def test_emit_globals_skips_constants(gen):
    gp = gen.machine.global_pointer
    symbols = [
        Location("g", 4, base=gp),
        Location("k", 4, base=gp, value=3),
    ]
    gen.emit_globals(symbols)
    out = text(gen)
    assert "\t.common\tg,4," in out
    assert ".common\tk" not in out


def test_array_element_address(gen):
    index = var(gen, "i", 4)
    arr = var(gen, "arr", 44, width=40, type=ARRAY)
    result = var(gen, "t", 48)
    result.reference = True
    gen.emit_array(index, 4, arr, result)
    out = text(gen)
    assert "! load address: arr" in out
    assert "\tcall\t.mul,2\n" in out
    assert "! saving to t" in out
    assert result.reference is True
    assert len(gen.machine.outputs) == 6