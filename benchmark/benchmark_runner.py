#!/usr/bin/env python3
"""
Tape VM benchmark runner.

Times the iterative engine (TapeVM) against the functional fold on a set
of bundled programs and records process memory with psutil.
"""

import json
import os
import statistics
import sys
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

import psutil

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from haifa_bf.bytecode import Program
from haifa_bf.fold import run_folded
from haifa_bf.runtime import compile_source
from haifa_bf.vm import TapeVM

HELLO_WORLD = (
    "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]"
    ">>.>---.+++++++..+++.>>.<-.<.+++.------.--------.>>+.>++."
)

PROGRAMS: Dict[str, str] = {
    "hello_world": HELLO_WORLD,
    "multiply_8x8": "++++++++[>++++++++<-]>+.",
    "nested_countdown": "++++++++++[>++++++++++[>++++++++++[-]<-]<-]",
    "wrap_spin": "+[+]" * 4,
}


class BFBenchmarkRunner:
    def __init__(self, benchmark_dir: str = "benchmark"):
        self.benchmark_dir = Path(benchmark_dir)
        self.results_dir = self.benchmark_dir / "results"
        self.results_dir.mkdir(parents=True, exist_ok=True)
        self.process = psutil.Process(os.getpid())

    def _measure(self, fn: Callable[[], bytes]) -> Dict:
        rss_before = self.process.memory_info().rss
        start_time = time.perf_counter()
        output = fn()
        elapsed = time.perf_counter() - start_time
        rss_after = self.process.memory_info().rss
        return {
            "time": elapsed,
            "rss_delta": rss_after - rss_before,
            "output": output,
        }

    def run_vm(self, program: Program) -> Dict:
        vm = TapeVM(program)
        result = self._measure(vm.run)
        result["steps"] = vm.steps
        return result

    def run_fold(self, program: Program) -> Dict:
        holder = {}

        def execute() -> bytes:
            holder["state"] = run_folded(program)
            return holder["state"].output

        result = self._measure(execute)
        result["steps"] = holder["state"].steps
        return result

    @staticmethod
    def _summarize(samples: List[Dict]) -> Dict:
        times = [sample["time"] for sample in samples]
        steps = samples[0]["steps"]
        avg_time = statistics.mean(times)
        return {
            "times": times,
            "avg_time": avg_time,
            "min_time": min(times),
            "max_time": max(times),
            "std_dev": statistics.stdev(times) if len(times) > 1 else 0,
            "steps": steps,
            "steps_per_sec": steps / avg_time if avg_time > 0 else 0,
            "max_rss_delta": max(sample["rss_delta"] for sample in samples),
            "sample_output": samples[0]["output"].decode("latin-1"),
        }

    def run_benchmark_suite(self, iterations: int = 3, programs: Optional[Dict[str, str]] = None) -> Dict:
        programs = programs or PROGRAMS
        results = {
            "test_info": {
                "timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
                "iterations": iterations,
                "python_version": sys.version,
                "system_info": {
                    "platform": sys.platform,
                    "cpu_count": psutil.cpu_count(),
                    "total_memory": psutil.virtual_memory().total,
                },
            },
            "tests": {},
        }

        for name, source in programs.items():
            print(f"\nRunning {name}...")
            program = compile_source(source)
            vm_samples = []
            fold_samples = []
            for i in range(iterations):
                print(f"  Iteration {i + 1}/{iterations}")
                vm_samples.append(self.run_vm(program))
                fold_samples.append(self.run_fold(program))

            test_result = {
                "program": name,
                "length": len(program),
                "tape_vm": self._summarize(vm_samples),
                "fold": self._summarize(fold_samples),
            }
            vm_avg = test_result["tape_vm"]["avg_time"]
            if vm_avg > 0:
                test_result["fold_ratio"] = test_result["fold"]["avg_time"] / vm_avg
            results["tests"][name] = test_result

        return results

    def save_results(self, results: Dict, filename: Optional[str] = None) -> Path:
        if filename is None:
            timestamp = time.strftime("%Y%m%d_%H%M%S")
            filename = f"benchmark_results_{timestamp}.json"

        result_path = self.results_dir / filename
        with open(result_path, "w", encoding="utf-8") as f:
            json.dump(results, f, indent=2, ensure_ascii=False)

        print(f"\nResults saved to: {result_path}")
        return result_path

    def print_summary(self, results: Dict) -> None:
        print("\n" + "=" * 60)
        print("PERFORMANCE BENCHMARK SUMMARY")
        print("=" * 60)
        test_info = results.get("test_info", {})
        print(f"Test Time: {test_info.get('timestamp')}")
        print(f"Iterations: {test_info.get('iterations')}")
        print()
        print(f"{'Program':<20} {'TapeVM (s)':<12} {'Fold (s)':<12} {'Ratio':<8} {'Steps/s':<12}")
        print("-" * 68)
        for name, data in results.get("tests", {}).items():
            vm_time = data["tape_vm"]["avg_time"]
            fold_time = data["fold"]["avg_time"]
            ratio = data.get("fold_ratio", 0)
            ratio_str = f"{ratio:.2f}x" if ratio > 0 else "N/A"
            print(
                f"{name:<20} {vm_time:<12.4f} {fold_time:<12.4f} {ratio_str:<8} "
                f"{data['tape_vm']['steps_per_sec']:<12.0f}"
            )


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Tape VM benchmark")
    parser.add_argument("-i", "--iterations", type=int, default=3, help="Iterations per program (default: 3)")
    parser.add_argument("-o", "--output", type=str, help="Result file name")
    parser.add_argument("--benchmark-dir", type=str, default="benchmark", help="Benchmark directory (default: benchmark)")
    args = parser.parse_args()

    runner = BFBenchmarkRunner(args.benchmark_dir)
    print("Starting tape VM benchmark...")
    print(f"Iterations per program: {args.iterations}")

    results = runner.run_benchmark_suite(iterations=args.iterations)
    runner.save_results(results, args.output)
    runner.print_summary(results)


if __name__ == "__main__":
    main()
