import unittest

from haifa_bf.bytecode import compile_program
from haifa_bf.config import LeftEdgePolicy, MachineConfig, OverflowPolicy
from haifa_bf.runtime import iter_output, run
from haifa_bf.vm import TapeVM
from haifa_bf.vm_errors import (
    BudgetExceededError,
    CellOverflowError,
    StructuralError,
    TapeUnderflowError,
    VMRuntimeError,
)
from haifa_bf.vm_events import OutputEmitted, StepTraced

HELLO_WORLD = (
    "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]"
    ">>.>---.+++++++..+++.>>.<-.<.+++.------.--------.>>+.>++."
)


class TestTapeVM(unittest.TestCase):

    def run_vm(self, source, config=None):
        vm = TapeVM(compile_program(source), config)
        output = vm.run()
        return vm, output

    def test_multiply_prints_A(self):
        _, output = self.run_vm("++++++++[>++++++++<-]>+.")
        assert output == b"A"

    def test_hello_world(self):
        assert run(HELLO_WORLD) == b"Hello World!\n"

    def test_loop_moves_value(self):
        vm, output = self.run_vm("+++[>+<-]")
        assert vm.tape == [0, 3]
        assert vm.dp == 0
        assert output == b""
        assert vm.halted

    def test_empty_loop_skips_body(self):
        vm, output = self.run_vm("[+++.>>>]+")
        assert vm.tape == [1]
        assert output == b""

    def test_zero_cell_jump_lands_after_matching_bracket(self):
        vm = TapeVM(compile_program("[>>>]+"))
        vm.step()
        assert vm.pc == 5
        assert vm.tape == [0]

    def test_comments_are_inert(self):
        noisy = "set 8: ++++++++ loop [> add 8: ++++++++ <- back] > +1 . print"
        clean = "++++++++[>++++++++<-]>+."
        assert run(noisy) == run(clean) == b"A"

    def test_input_instruction_is_ignored(self):
        assert run("+,.") == b"\x01"

    def test_tape_grows_one_cell_per_move(self):
        vm, _ = self.run_vm(">>><")
        assert vm.tape == [0, 0, 0, 0]
        assert vm.dp == 2

    def test_wraps_by_default(self):
        assert run("-.") == b"\xff"
        assert run("+" * 256 + ".") == b"\x00"

    def test_overflow_error_policy(self):
        config = MachineConfig(overflow=OverflowPolicy.ERROR)
        with self.assertRaises(CellOverflowError) as ctx:
            run("+" * 256, config)
        assert ctx.exception.pc == 255
        assert ctx.exception.snapshot.tape == (255,)

        with self.assertRaises(CellOverflowError):
            run(">-", config)

    def test_unbounded_cells(self):
        vm, output = self.run_vm("--.", MachineConfig(cell_bits=None))
        assert vm.tape == [-2]
        assert output == b"\xfe"

    def test_wide_cells_print_low_byte(self):
        vm, output = self.run_vm("+" * 321 + ".", MachineConfig(cell_bits=16))
        assert vm.tape == [321]
        assert output == bytes([321 % 256])

    def test_left_edge_error(self):
        with self.assertRaises(TapeUnderflowError) as ctx:
            run("+>+<<")
        error = ctx.exception
        assert error.pc == 4
        assert error.data_pointer == 0
        assert error.snapshot.tape == (1, 1)

    def test_left_edge_clamp(self):
        config = MachineConfig(left_edge=LeftEdgePolicy.CLAMP)
        assert run("<<<+.", config) == b"\x01"

    def test_left_edge_policy_is_deterministic(self):
        config = MachineConfig(left_edge=LeftEdgePolicy.CLAMP)
        results = {run("+<<.>+.", config) for _ in range(5)}
        assert results == {b"\x01\x01"}
        for _ in range(5):
            with self.assertRaises(TapeUnderflowError):
                run("+<<.>+.")

    def test_structural_error_before_execution(self):
        seen = []
        with self.assertRaises(StructuralError):
            run("+.]", output=seen.append)
        assert seen == []

    def test_step_budget(self):
        config = MachineConfig(max_steps=100)
        with self.assertRaises(BudgetExceededError) as ctx:
            run("+[]", config)
        assert ctx.exception.reason == "steps"
        assert ctx.exception.snapshot.steps == 100

    def test_step_budget_allows_exact_length(self):
        assert run("+++.", MachineConfig(max_steps=4)) == b"\x03"

    def test_timeout_budget(self):
        with self.assertRaises(BudgetExceededError) as ctx:
            run("+[]", MachineConfig(timeout=0))
        assert ctx.exception.reason == "timeout"

    def test_timeout_applies_to_direct_step_calls(self):
        vm = TapeVM(compile_program("+[]"), MachineConfig(timeout=0))
        with self.assertRaises(BudgetExceededError) as ctx:
            vm.step()
        assert ctx.exception.reason == "timeout"
        assert vm.steps == 0

    def test_output_sink_receives_bytes_in_order(self):
        seen = []
        output = run("+.+.+.", output=seen.append)
        assert seen == [1, 2, 3]
        assert output == b"\x01\x02\x03"

    def test_sink_failure_is_wrapped(self):
        def broken(value):
            raise ValueError("sink closed")

        vm = TapeVM(compile_program("+."), output_sink=broken)
        with self.assertRaises(VMRuntimeError) as ctx:
            vm.run()
        assert "sink closed" in str(ctx.exception)
        assert isinstance(ctx.exception.__cause__, ValueError)
        assert ctx.exception.pc == 1

    def test_iter_output_is_lazy(self):
        stream = iter_output("+.+.+[]")
        assert next(stream) == 1
        assert next(stream) == 2

    def test_iter_output_raises_structural_errors_eagerly(self):
        with self.assertRaises(StructuralError):
            iter_output("[")

    def test_trace_events(self):
        vm = TapeVM(compile_program("+."), trace=True)
        vm.run()
        events = vm.drain_events()
        assert events == [
            StepTraced(step=0, pc=0, instruction="+", data_pointer=0, cell=0),
            StepTraced(step=1, pc=1, instruction=".", data_pointer=0, cell=1),
            OutputEmitted(step=1, pc=1, value=1),
        ]
        assert vm.drain_events() == []

    def test_step_reports_halt(self):
        vm = TapeVM(compile_program("+"))
        assert vm.step() is None
        assert vm.step() == "halt"
        assert vm.halted

    def test_snapshot_and_reset(self):
        vm, _ = self.run_vm("+>++.")
        snapshot = vm.snapshot_state()
        assert snapshot.tape == (1, 2)
        assert snapshot.current_cell == 2
        assert snapshot.output == b"\x02"
        assert snapshot.steps == 5
        vm.reset()
        assert vm.tape == [0]
        assert vm.pc == 0 and vm.dp == 0
        assert vm.output == bytearray()

    def test_load_keeps_tape(self):
        vm, _ = self.run_vm(">+++")
        vm.load(compile_program("+."))
        assert vm.run() == b"\x04"
        assert vm.tape == [0, 4]

    def test_debug_run_prints_steps(self):
        import contextlib
        import io

        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer):
            TapeVM(compile_program("+")).run(debug=True)
        assert "[PC=0] EXEC: '+'" in buffer.getvalue()


if __name__ == "__main__":
    unittest.main()
