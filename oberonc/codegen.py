"""Code generation driver: storage layout, labels and statement-level emission."""

import contextlib
import os
import sys

from .machine import Location, Register, RegisterKind
from .ops import Op

DEFAULT_OUTPUT_TARGET = "oberon.s"
BEGIN_RECORD = -2
NEWLINE_LABEL = ".NEWLINE"

_RELATIONS = frozenset({Op.EQU, Op.NEQ, Op.LT, Op.GT, Op.LTE, Op.GTE})


class _Discard:
    """Text sink that drops everything written after code generation is aborted."""

    closed = False

    def write(self, text):
        return len(text)


def _type_flag(loc, flag):
    return bool(getattr(loc.type, flag, False))


class CodeGenerator:
    """Lays out storage and drives a target machine to emit assembly.

    Locations are ``machine.Location`` objects; their ``type`` may carry
    ``is_array`` and ``is_bool`` flags that select array copies and boolean
    handling.
    """

    def __init__(self, machine, target=DEFAULT_OUTPUT_TARGET, log=None, identity="oberonc"):
        self.machine = machine
        self.target = target
        self.log = log
        self.identity = identity
        self.scope_pointer = machine.frame_pointer
        self.scope_offset = 0
        self.global_offset = 0
        self.aborted = False
        self._records = []
        self._scope_align = machine.POINTER_WIDTH
        self._record_align = machine.POINTER_WIDTH
        self._newline_generated = False
        self._label_id = 0
        self._output = None

    def _print(self, text):
        print(text, file=self.log if self.log is not None else sys.stdout)

    @property
    def temp_storage_width(self):
        """Width reserved for temporaries."""
        return 8

    # output file

    def begin(self):
        """Open the target file and write the assembly header."""
        try:
            self._output = open(self.target, "w", encoding="latin-1")
        except OSError:
            self._print(f"unable to open target file '{self.target}'.")
            self.abort()
            return
        self.machine.set_output(self._output)
        self._output.write(f'\t.file "{self.target}"\n')
        self._output.write("oberon1_compiled.:\n")
        self._output.write('.section\t".rodata"\n')
        self._output.write('.TRUE:\t.asciz\t"TRUE"\n')
        self._output.write('.FALSE:\t.asciz\t"FALSE"\n')

    def end(self):
        """Write the assembly footer and close the target file."""
        if self._output is not None and not self._output.closed:
            self._output.write(f'\t.ident\t"{self.identity}"\n')
            self._output.close()

    def abort(self):
        """Stop code generation and remove the partly written target file."""
        self._print("Aborting Code Generation")
        self.aborted = True
        if self._output is not None and not self._output.closed:
            self._output.close()
        self.machine.set_output(_Discard())
        if not getattr(self.machine, "is_sparc", False):
            raise RuntimeError("incompatible machine architecture")
        with contextlib.suppress(OSError):
            os.remove(self.target)

    # storage layout

    def set_scope_pointer(self, reg):
        """Switch to the scope addressed through ``reg``, starting at offset 0."""
        if self.scope_pointer is not None and self.scope_pointer.is_global:
            self.global_offset += self.scope_offset
        self.scope_pointer = reg
        self.scope_offset = 0

    def _place(self, current, width, align):
        pointer_width = self.machine.POINTER_WIDTH
        if width < pointer_width and align - width >= 0:
            offset = current + width
            return offset, offset, abs((align - width) % pointer_width)
        current = current + (0 if align == pointer_width else align) + width
        return current, current, pointer_width - (width % 4)

    def allocate(self, width):
        """Reserve ``width`` bytes in the current scope and return their offset."""
        if self.scope_offset == 0:
            self._scope_align = self.machine.POINTER_WIDTH
        offset, self.scope_offset, self._scope_align = self._place(
            self.scope_offset, width, self._scope_align
        )
        return offset

    @property
    def in_record(self):
        """True while a record's fields are being laid out."""
        return bool(self._records)

    def open_record(self):
        """Start laying out the fields of a record."""
        self._records.append(BEGIN_RECORD)

    def close_record(self):
        """Finish the innermost record; RuntimeError when none is open."""
        if not self._records:
            raise RuntimeError("no record is open")
        self._records.pop()

    def allocate_field(self, width):
        """Reserve ``width`` bytes in the innermost record and return the field offset."""
        if not self._records:
            raise RuntimeError("no record is open")
        current = self._records[-1]
        if current == BEGIN_RECORD:
            self._record_align = self.machine.POINTER_WIDTH
            self._records[-1] = width
            return 0
        offset, self._records[-1], self._record_align = self._place(
            current, width, self._record_align
        )
        return offset

    # labels and strings

    def _next_label(self, base):
        label = f"{base}{self._label_id}"
        self._label_id += 1
        return label

    def emit_save_string_argument(self, text):
        """Pass the address of ``text`` (a label or symbol) as the next argument."""
        reg = self.machine.get_output_reg()
        self.machine.emit_set(text, reg)
        self.machine.add_argument_register(reg)

    def emit_save_string(self, text):
        """Emit ``text`` as string data and return its label.

        A newline string is emitted once and shared under one label.
        """
        if text == "\n":
            if self._newline_generated:
                return NEWLINE_LABEL
            label = NEWLINE_LABEL
            self._newline_generated = True
        else:
            label = self._next_label(".LLC")
        self.machine.emit_save_string(label, text)
        return label

    # expressions and statements

    def emit_binary_operation(self, result, arg1, op, arg2):
        """Emit ``result = arg1 op arg2``; relations store 1 or 0."""
        machine = self.machine
        r1 = machine.get_output_reg()
        r2 = machine.get_output_reg()
        rr = machine.get_output_reg()
        machine.emit_load(arg1, r1)
        machine.emit_load(arg2, r2)
        label = machine.emit_binary_op(op, r1, r2, rr)
        if op in _RELATIONS:
            l7 = Register("%l7", RegisterKind.LOCAL)
            machine.emit_move(1, l7)
            machine.emit_label(label)
            machine.emit_store(l7, result)
            machine.emit_clear(l7)
        else:
            machine.emit_store(rr, result)
        machine.free_output_reg(rr)
        machine.free_output_reg(r2)
        machine.free_output_reg(r1)

    def emit_constant(self, constant):
        """Move a constant's value through a register into its location."""
        reg = self.machine.get_reg()
        self.machine.emit_move(int(constant.value), reg)
        self.machine.emit_store(reg, constant)
        self.machine.free_reg(reg)

    def emit_globals(self, symbols):
        """Declare common storage for every variable among ``symbols``.

        The alignment is the symbol's ``alignment`` attribute when it has one,
        otherwise its width capped at the pointer width.
        """
        for symbol in symbols:
            if symbol.is_const:
                continue
            alignment = getattr(symbol, "alignment", None)
            if alignment is None:
                alignment = max(1, min(symbol.width, self.machine.POINTER_WIDTH))
            self.machine.emit_global(symbol.name, symbol.width, alignment)

    def emit_assignment(self, lhs, rhs):
        """Emit ``lhs := rhs``; whole arrays are copied with the memory-copy routine."""
        machine = self.machine
        if _type_flag(lhs, "is_array") and _type_flag(rhs, "is_array"):
            machine.emit_save_reference_argument(lhs)
            machine.emit_save_reference_argument(rhs)
            machine.emit_save_argument(Location("", machine.INT_WIDTH, value=rhs.width))
            machine.emit_procedure_call(machine.memory_copy, None)
        else:
            reg = machine.get_reg()
            machine.emit_load(rhs, reg)
            machine.emit_store(reg, lhs)
            machine.free_reg(reg)

    def emit_negation(self, expr, result):
        """Store the logical (boolean) or arithmetic negation of ``expr`` in ``result``."""
        machine = self.machine
        reg = machine.get_reg()
        machine.emit_load(expr, reg)
        if _type_flag(expr, "is_bool"):
            machine.emit_not(reg)
        else:
            machine.emit_neg(reg)
        machine.emit_store(reg, result)
        machine.free_reg(reg)

    def emit_array(self, index, elem_size, array_base, result, one_dim=False):
        """Store the address of ``array_base[index]`` in ``result``.

        Unless ``one_dim`` is set, the address is stored into ``result`` itself
        and ``result`` is left marked as a reference.
        """
        machine = self.machine
        r1 = machine.get_output_reg()
        r2 = machine.get_output_reg()
        r3 = machine.get_output_reg()
        machine.emit_move(elem_size, r1)
        machine.emit_load(index, r2)
        machine.emit_binary_op(Op.MULTIPLY, r1, r2, r2)
        machine.emit_load_address(array_base, r1)
        machine.emit_binary_op(Op.PLUS, r1, r2, r3)
        if not one_dim:
            result.reference = False
        machine.emit_store(r3, result)
        if not one_dim:
            result.reference = True
        machine.free_output_reg(r3)
        machine.free_output_reg(r2)
        machine.free_output_reg(r1)

    def emit_new(self, ptr, base_width):
        """Allocate ``base_width`` zeroed bytes and store the address in ``ptr``."""
        machine = self.machine
        machine.emit_save_argument(Location("", machine.INT_WIDTH, value=1))
        machine.emit_save_argument(Location("", machine.INT_WIDTH, value=base_width))
        machine.emit_procedure_call(machine.memory_allocator, ptr)

    def emit_pointer_reference(self, base, field, result):
        """Store the address of ``base^.field`` into ``result`` as a reference."""
        machine = self.machine
        base_reg = machine.get_reg()
        offset_reg = machine.get_reg()
        machine.emit_load(base, base_reg)
        machine.emit_move(field.offset, offset_reg)
        machine.emit_binary_op(Op.PLUS, base_reg, offset_reg, base_reg)
        saved_width = result.width
        result.width = machine.POINTER_WIDTH
        result.reference = False
        try:
            machine.emit_store(base_reg, result)
        finally:
            result.reference = True
            result.width = saved_width
        machine.free_reg(offset_reg)
        machine.free_reg(base_reg)

    def emit_save_procedure_argument(self, arg, param=None, from_printf=False):
        """Pass ``arg`` for ``param``: by address for VAR parameters, booleans as text for printf."""
        if param is not None and param.reference:
            self.machine.emit_save_reference_argument(arg)
        elif from_printf and _type_flag(arg, "is_bool"):
            self.machine.emit_save_bool_argument_as_string(arg)
        else:
            self.machine.emit_save_argument(arg)

    # thin delegations to the machine

    def emit_procedure_header(self, name, params):
        self.machine.emit_procedure_header(name, params)

    def emit_procedure_footer(self, name, stack_save):
        self.machine.emit_procedure_footer(name, stack_save)

    def emit_procedure_call(self, procedure, result=None):
        self.machine.emit_procedure_call(procedure, result)

    def emit_save_argument(self, arg):
        self.machine.emit_save_argument(arg)

    def emit_save_reference_argument(self, arg):
        self.machine.emit_save_reference_argument(arg)

    def emit_return(self, expr=None):
        self.machine.emit_return(expr)

    def emit_read_only_data_section(self):
        self.machine.emit_read_only_data_section()

    def emit_text_section(self):
        self.machine.emit_text_section()