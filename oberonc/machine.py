"""Target-machine model: registers, storage locations and SPARC assembly emission."""

import io
from dataclasses import dataclass
from enum import Enum, auto

from .ops import Op

FRAME_POINTER = "%fp"
STACK_POINTER = "%sp"
GLOBAL_POINTER = "%g1"

DEFAULT_REGISTERS = ("%l7", "%l6", "%l5", "%l4", "%l3", "%l2", "%l1", "%l0")
OUTPUT_REGISTERS = ("%o5", "%o4", "%o3", "%o2", "%o1", "%o0")
INPUT_REGISTERS = ("%i5", "%i4", "%i3", "%i2", "%i1", "%i0")

# Range of a signed 13-bit immediate operand.
MOV_IMMEDIATE_MIN = -4096
MOV_IMMEDIATE_MAX = 4095

TAB = "\t"


class RegisterKind(Enum):
    """Role of a register."""

    LOCAL = auto()
    GLOBAL = auto()
    OUTPUT = auto()
    INPUT = auto()
    STACK = auto()
    FRAME = auto()


@dataclass(frozen=True)
class Register:
    """A named machine register."""

    name: str
    kind: RegisterKind = RegisterKind.LOCAL
    address: int = None

    @property
    def is_global(self):
        """True for a global register."""
        return self.kind is RegisterKind.GLOBAL

    def __str__(self):
        return self.name


class RegisterBank:
    """A pool of registers handed out last-listed first."""

    def __init__(self, names, kind, global_pointer=None, stack_pointer=None,
                 frame_pointer=None):
        self.kind = kind
        self._free = [Register(name, kind) for name in names]
        self.global_pointer = global_pointer
        self.stack_pointer = stack_pointer
        self.frame_pointer = frame_pointer

    def __len__(self):
        return len(self._free)

    def acquire(self):
        """Take a free register; raise RuntimeError when none is left."""
        if not self._free:
            raise RuntimeError(f"no free {self.kind.name.lower()} register")
        return self._free.pop()

    def release(self, reg):
        """Return ``reg`` to the pool; raise ValueError if it is already free."""
        if reg in self._free:
            raise ValueError(f"register {reg} is already free")
        self._free.append(reg)


@dataclass
class Location:
    """A constant or a variable in memory, as seen by the code emitter.

    A location with a ``value`` is a constant. ``base`` is the register the
    ``offset`` is taken from; a global base means the location is addressed
    by name. ``reference`` marks a location that holds the address of the
    actual storage.
    """

    name: str
    width: int = 4
    base: Register = None
    offset: int = 0
    reference: bool = False
    value: object = None
    type: object = None

    @property
    def is_const(self):
        """True for a compile-time constant."""
        return self.value is not None

    @property
    def is_global(self):
        """True when addressed through a global base register."""
        return self.base is not None and self.base.is_global


@dataclass
class Procedure:
    """A callable routine; a ``param_count`` of -1 leaves the count off the call."""

    name: str
    param_count: int = -1


class Sparc:
    """Emits SPARC assembly for the code generator into a text stream."""

    name = "SPARC"
    is_sparc = True

    INT_WIDTH = 4
    BOOL_WIDTH = 1
    POINTER_WIDTH = 4
    REAL_WIDTH = 4
    CHAR_WIDTH = 1

    def __init__(self, registers, outputs, inputs, out=None):
        self.registers = registers
        self.outputs = outputs
        self.inputs = inputs
        self.out = out if out is not None else io.StringIO()
        self.one = Register("%g2", RegisterKind.GLOBAL)
        self.zero = Register("%g0", RegisterKind.GLOBAL)
        self.o0 = Register("%o0", RegisterKind.OUTPUT)
        self.l7 = Register("%l7", RegisterKind.LOCAL)
        self.mul = Procedure(".mul", 2)
        self.div = Procedure(".div", 2)
        self.rem = Procedure(".rem", 2)
        self.memory_copy = Procedure("memcpy", 3)
        self.memory_allocator = Procedure("calloc", 1)
        self._if_labels = []
        self._while_begin_labels = []
        self._while_end_labels = []
        self._arg_regs = []
        self._input_regs = []
        self._label_id = 0

    @classmethod
    def standard(cls, out=None):
        """Build a machine with the usual local, output and input register banks."""
        registers = RegisterBank(
            DEFAULT_REGISTERS,
            RegisterKind.LOCAL,
            global_pointer=Register(GLOBAL_POINTER, RegisterKind.GLOBAL),
            stack_pointer=Register(STACK_POINTER, RegisterKind.STACK),
            frame_pointer=Register(FRAME_POINTER, RegisterKind.FRAME),
        )
        outputs = RegisterBank(OUTPUT_REGISTERS, RegisterKind.OUTPUT)
        inputs = RegisterBank(INPUT_REGISTERS, RegisterKind.INPUT)
        return cls(registers, outputs, inputs, out)

    # registers

    @property
    def global_pointer(self):
        return self.registers.global_pointer

    @property
    def stack_pointer(self):
        return self.registers.stack_pointer

    @property
    def frame_pointer(self):
        return self.registers.frame_pointer

    def get_reg(self):
        return self.registers.acquire()

    def free_reg(self, reg):
        self.registers.release(reg)

    def get_output_reg(self):
        return self.outputs.acquire()

    def free_output_reg(self, reg):
        self.outputs.release(reg)

    def add_argument_register(self, reg):
        """Record an output register holding an argument of the next call."""
        self._arg_regs.append(reg)

    def _free_argument_registers(self):
        while self._arg_regs:
            self.outputs.release(self._arg_regs.pop())

    def _free_input_registers(self):
        while self._input_regs:
            self.inputs.release(self._input_regs.pop())

    def set_output(self, out):
        self.out = out

    def _emit(self, text):
        self.out.write(text)

    def _address(self, loc):
        """Format ``[base +/- offset]``; frame-relative offsets count downwards."""
        below_frame = loc.base is not None and loc.base.name == FRAME_POINTER
        sign = " - " if below_frame else " + "
        return f"[{loc.base}{sign}{loc.offset}]"

    # procedures

    def emit_procedure_header(self, name, params):
        """Emit a procedure prologue and spill its parameters from input registers."""
        self._emit(".section\t \".text\"\n")
        self._emit(f"{TAB}.global {name}\n")
        self._emit(f"{TAB}.type\t {name}, #function \n")
        self._emit(f"{name}:\n")
        self._emit(f"{TAB}!#PROLOGUE# 0\n")
        self._emit(f"{TAB}save{TAB}%sp, {name}_space, %sp\n")
        self._emit(f"{TAB}!#PROLOGUE# 1\n")
        if name == "main":
            self.emit_move(1, self.one)
        self._free_input_registers()
        for param in params:
            reg = self.inputs.acquire()
            if param.reference:
                self._emit(
                    f"{TAB}st\t{reg},{self._address(param)}{TAB}! saving to {param.name}\n"
                )
            else:
                self.emit_store(reg, param)
            self._input_regs.append(reg)
        self._free_input_registers()
        self.emit_clear(self.l7)

    def emit_procedure_footer(self, name, stack_save):
        """Emit the frame-size definition and the return sequence."""
        self._emit(f"{TAB}{name}_space = {(-(92 + stack_save)) & -8}\n")
        self._emit(f"{TAB}ret\n")
        self._emit(f"{TAB}restore\n")

    def emit_procedure_call(self, procedure, result):
        """Emit a call; store %o0 into ``result`` when one is given."""
        self._free_argument_registers()
        if procedure.param_count == -1:
            self._emit(f"{TAB}call\t{procedure.name}\n")
        else:
            self._emit(f"{TAB}call\t{procedure.name},{procedure.param_count}\n")
        self._emit(f"{TAB}nop\n")
        if result is not None:
            self.emit_store(self.o0, result)

    def emit_return(self, expr):
        """Emit a return, loading ``expr`` into %i0 first when given."""
        if expr is not None:
            self.emit_load(expr, Register("%i0", RegisterKind.LOCAL))
        self._emit(f"{TAB}ret{TAB}\n")
        self._emit(f"{TAB}restore\n")

    # memory

    def emit_load_address(self, loc, reg):
        """Load the address of ``loc`` into ``reg``."""
        if loc.is_global:
            self.emit_set(loc.name, reg)
        elif loc.reference:
            self._emit(
                f"{TAB}ld\t{self._address(loc)},{reg}{TAB}! load address: {loc.name}\n"
            )
        else:
            self._emit(
                f"{TAB}add{TAB}{loc.base},-{loc.offset},{reg}{TAB}! load address: {loc.name}\n"
            )

    def emit_load(self, loc, reg):
        """Load the value of ``loc`` into ``reg``."""
        load = "ldub" if loc.width == self.BOOL_WIDTH else "ld"
        if loc.is_const:
            self.emit_move(int(loc.value), reg)
        elif loc.is_global:
            self.emit_set(loc.name, reg)
            self._emit(f"{TAB}{load}\t[{reg}],{reg}")
            self._emit(f"{TAB}! load value of global: {loc.name}\n")
        elif loc.reference:
            self._emit(
                f"{TAB}ld\t{self._address(loc)},{reg}{TAB}! load reference: {loc.name}\n"
            )
            self._emit(f"{TAB}{load}{TAB}[{reg}],{reg}\n")
        else:
            self._emit(f"{TAB}{load}{TAB}{self._address(loc)},{reg}{TAB}! load: {loc.name}\n")

    def emit_store(self, reg, loc):
        """Store ``reg`` into ``loc``; constants are left alone."""
        if loc.is_const:
            return
        store = "stb" if loc.width == self.BOOL_WIDTH else "st"
        greg = self.get_reg()
        try:
            if loc.is_global:
                self.emit_set(loc.name, greg)
                self._emit(
                    f"{TAB}{store}\t{reg},[{greg}]{TAB}! saving to global: {loc.name}\n"
                )
            elif loc.reference:
                self._emit(
                    f"{TAB}ld\t{self._address(loc)},{greg}{TAB}! load reference: {loc.name}\n"
                )
                self._emit(
                    f"{TAB}{store}\t{reg},[{greg}]{TAB}! saving ref param: {loc.name}\n"
                )
            else:
                self._emit(
                    f"{TAB}{store}\t{reg},{self._address(loc)}{TAB}! saving to {loc.name}\n"
                )
        finally:
            self.free_reg(greg)

    def emit_global(self, name, size, alignment):
        self._emit(f"{TAB}.common\t{name},{size},{alignment}\n")

    # arithmetic

    def emit_binary_op(self, op, reg1, reg2, reg3):
        """Emit ``reg3 = reg1 op reg2``.

        Relations emit a compare and a branch taken when the relation fails;
        the branch label is returned. Other operators return None.
        """
        if op == Op.MULTIPLY:
            self.emit_procedure_call(self.mul, None)
            self.emit_move_register(self.o0, reg3)
        elif op == Op.PLUS:
            self._emit(f"{TAB}add{TAB}{reg1},{reg2},{reg3}\n")
        elif op == Op.MINUS:
            self._emit(f"{TAB}sub{TAB}{reg1},{reg2},{reg3}\n")
        elif op in (Op.SLASH, Op.DIVIDE):
            self.emit_procedure_call(self.div, None)
            self.emit_move_register(self.o0, reg3)
        elif op == Op.MOD:
            self.emit_procedure_call(self.rem, None)
            self.emit_move_register(self.o0, reg3)
        else:
            branch = {
                Op.LT: "bge",
                Op.GT: "ble",
                Op.LTE: "bg",
                Op.GTE: "bl",
                Op.EQU: "bne",
                Op.NEQ: "be",
            }.get(op)
            if branch is None:
                return None
            self.emit_compare(reg1, reg2)
            label = self.next_label(".LL")
            self.emit_branch(branch, label)
            return label
        return None

    def emit_move(self, value, reg):
        """Move an integer constant into ``reg``."""
        if MOV_IMMEDIATE_MIN <= value <= MOV_IMMEDIATE_MAX:
            self._emit(f"{TAB}mov\t{value},{reg}")
            self._emit(f"{TAB}{TAB}! {reg}={value}\n")
        else:
            self.emit_set(value, reg)

    def emit_move_register(self, src, dst):
        """Copy ``src`` into ``dst`` unless they are the same register."""
        if str(src) == str(dst):
            return
        self._emit(f"{TAB}mov\t{src},{dst}")
        self._emit(f"{TAB}{TAB}! {src}={dst}\n")

    def emit_set(self, value, reg):
        """Set ``reg`` to an integer or to the address of a symbol."""
        separator = TAB if isinstance(value, str) else TAB * 2
        self._emit(f"{TAB}set\t{value},{reg}")
        self._emit(f"{separator}! {reg}={value}\n")

    def emit_compare(self, reg1, reg2):
        self._emit(f"{TAB}cmp{TAB}{reg1},{reg2}\n")

    def emit_clear(self, reg):
        self._emit(f"{TAB}clr\t{reg}\n")

    def emit_neg(self, reg):
        self._emit(f"{TAB}neg\t{reg}{TAB}{TAB}! negating\n")

    def emit_not(self, reg):
        self._emit(f"{TAB}xor\t{reg},{self.one},{reg}{TAB}! negating\n")

    # arguments and data

    def emit_save_argument(self, arg):
        """Load the value of ``arg`` into the next argument register."""
        reg = self.get_output_reg()
        if arg.is_const:
            self.emit_move(int(arg.value), reg)
        else:
            self.emit_load(arg, reg)
        self.add_argument_register(reg)

    def emit_save_reference_argument(self, arg):
        """Load the address of ``arg`` into the next argument register."""
        reg = self.get_output_reg()
        self.emit_load_address(arg, reg)
        self.add_argument_register(reg)

    def emit_save_bool_argument_as_string(self, arg):
        """Pass the string TRUE or FALSE according to a boolean argument."""
        reg = self.get_output_reg()
        self.emit_if_begin(arg)
        self.emit_set(".TRUE", reg)
        self.emit_else_begin()
        self.emit_set(".FALSE", reg)
        self.emit_else_end()
        self.add_argument_register(reg)

    def emit_save_string(self, label, text):
        self._emit(f"{label}:\n")
        self._emit(f'{TAB}.asciz{TAB}"{text}"\n')

    def emit_read_only_data_section(self):
        self._emit(f'.section{TAB}".rodata"\n')

    def emit_text_section(self):
        self._emit(f'.section{TAB}".text"\n')

    def emit_comment(self, comment, width=20):
        """Emit ``comment`` as comment lines of at most ``width`` characters."""
        for i, ch in enumerate(comment):
            if i % width == 0:
                self._emit("\n! ")
            self._emit(ch)

    # control flow

    def next_label(self, base):
        """Return a fresh label starting with ``base``."""
        label = f"{base}{self._label_id}"
        self._label_id += 1
        return label

    def emit_branch(self, branch, label):
        self._emit(f"{TAB}{branch}{TAB}{label}\n")
        self._emit(f"{TAB}nop\n")

    def emit_label(self, label):
        self._emit(f"{label}:\n")

    def emit_if_begin(self, expr):
        """Branch past the THEN part when ``expr`` is false."""
        reg = self.get_reg()
        self.emit_load(expr, reg)
        self.emit_compare(reg, self.one)
        label = self.next_label(".IF")
        self._if_labels.append(label)
        self.emit_branch("bne", label)
        self.free_reg(reg)

    def emit_if_end(self):
        self.emit_label(self._if_labels.pop())

    def emit_else_begin(self):
        label = self.next_label(".ELSE")
        self.emit_branch("b", label)
        self.emit_if_end()
        self._if_labels.append(label)

    def emit_else_end(self):
        self.emit_label(self._if_labels.pop())

    def emit_while_begin(self):
        label = self.next_label(".BEGWHILE")
        self._while_begin_labels.append(label)
        self.emit_label(label)

    def emit_while_middle(self, expr):
        """Leave the loop when ``expr`` is false."""
        reg = self.get_reg()
        self.emit_load(expr, reg)
        self.emit_compare(reg, self.zero)
        self._while_end_labels.append(self.next_label(".ENDWHILE"))
        self.emit_branch("be", self._while_end_labels[-1])
        self.free_reg(reg)

    def emit_while_end(self):
        self.emit_branch("b", self._while_begin_labels.pop())
        self.emit_label(self._while_end_labels.pop())

    def emit_exit(self):
        """Branch to the end of the innermost loop; IndexError outside a loop."""
        self.emit_branch("b", self._while_end_labels[-1])

    def emit_or_begin(self, sym):
        reg = self.get_output_reg()
        self.emit_load(sym, reg)
        self.emit_compare(reg, self.one)
        label = self.next_label(".OR")
        self.emit_branch("be", label)
        self._if_labels.append(label)
        self.free_output_reg(reg)

    def emit_or_end(self, sym, result):
        reg = self.get_output_reg()
        self.emit_load(sym, reg)
        self.emit_compare(reg, self.one)
        label = self.next_label(".NOTOR")
        self.emit_branch("bne", label)
        self.free_output_reg(reg)
        self.emit_label(self._if_labels.pop())
        self.emit_move(1, self.l7)
        self.emit_label(label)
        self.emit_store(self.l7, result)
        self.emit_clear(self.l7)

    def emit_and_begin(self, sym):
        reg = self.get_output_reg()
        self.emit_load(sym, reg)
        self.emit_compare(reg, self.zero)
        label = self.next_label(".NOTAND")
        self.emit_branch("be", label)
        self._if_labels.append(label)
        self.free_output_reg(reg)

    def emit_and_end(self, sym, result):
        reg = self.get_output_reg()
        self.emit_load(sym, reg)
        self.emit_compare(reg, self.zero)
        self.emit_branch("be", self._if_labels[-1])
        self.free_output_reg(reg)
        self.emit_move(1, self.l7)
        self.emit_label(self._if_labels.pop())
        self.emit_store(self.l7, result)
        self.emit_clear(self.l7)