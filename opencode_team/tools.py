"""
Calculator and randomizer helpers exposed to opencode as plugin tools.
Run one from the shell with `opencode-tool <name> [args...]`.
"""
from __future__ import annotations
import argparse
import json
import math
import random
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence

from .common import log_err


# =========================
# Math
# =========================

def add(a: float, b: float) -> float:
    return a + b

def multiply(a: float, b: float) -> float:
    return a * b

def subtract(a: float, b: float) -> float:
    return a - b

def divide(a: float, b: float) -> float:
    if b == 0:
        raise ValueError("Division by zero is not allowed.")
    return a / b

def square_root(a: float) -> float:
    if a < 0:
        raise ValueError("Cannot calculate the square root of a negative number.")
    return math.sqrt(a)

def power(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except OverflowError:
        # JS Math.pow gives +/-Infinity here; odd integer powers keep the sign
        odd = float(exponent).is_integer() and exponent % 2 == 1
        return -math.inf if base < 0 and odd else math.inf

def factorial(n: int) -> int:
    if isinstance(n, float) and n.is_integer():
        n = int(n)
    if not isinstance(n, int) or n < 0:
        raise ValueError("Factorial is only defined for non-negative integers.")
    return math.factorial(n)

def modulus(a: float, b: float) -> float:
    if b == 0:
        raise ValueError("Division by zero is not allowed.")
    # sign follows the dividend, like the JS % operator
    return math.fmod(a, b)


# =========================
# Random
# =========================

def random_int(min_value: int, max_value: int, rng: Optional[random.Random] = None) -> int:
    rng = rng or random
    lo, hi = math.ceil(min_value), math.floor(max_value)
    if lo > hi:
        raise ValueError("Minimum value must not exceed maximum value.")
    return rng.randint(lo, hi)

def dice(rng: Optional[random.Random] = None) -> int:
    return (rng or random).randint(1, 6)

def coin(rng: Optional[random.Random] = None) -> str:
    return "heads" if (rng or random).random() < 0.5 else "tails"

def pick(items: Sequence[str], rng: Optional[random.Random] = None) -> str:
    if not items:
        raise ValueError("The list of items cannot be empty.")
    return (rng or random).choice(list(items))


# =========================
# Registry
# =========================

@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    func: Callable[..., Any]
    params: List[str]


TOOLS: Dict[str, Tool] = {t.name: t for t in [
    Tool("add", "Add two numbers", add, ["a", "b"]),
    Tool("multiply", "Multiply two numbers", multiply, ["a", "b"]),
    Tool("subtract", "Subtract two numbers", subtract, ["a", "b"]),
    Tool("divide", "Divide two numbers", divide, ["a", "b"]),
    Tool("squareRoot", "Calculate the square root of a number", square_root, ["a"]),
    Tool("power", "Raise a number to the power of another number", power, ["base", "exponent"]),
    Tool("factorial", "Calculate the factorial of a number", factorial, ["n"]),
    Tool("modulus", "Calculate the modulus of two numbers", modulus, ["a", "b"]),
    Tool("int", "Generate a random integer", random_int, ["min", "max"]),
    Tool("dice", "Roll a dice", dice, []),
    Tool("coin", "Flip a coin", coin, []),
    Tool("pick", "Pick a random item from a list", pick, ["items..."]),
]}


def _number(raw: str) -> float:
    val = float(raw)
    return int(val) if val.is_integer() else val


def call_tool(name: str, raw_args: Sequence[str]) -> Any:
    if name not in TOOLS:
        raise KeyError(f"Unknown tool '{name}'. Choose from: {list(TOOLS.keys())}")
    tool = TOOLS[name]
    if name == "pick":
        return tool.func(list(raw_args))
    if len(raw_args) != len(tool.params):
        raise ValueError(f"{name} expects {len(tool.params)} argument(s): {' '.join(tool.params)}")
    return tool.func(*[_number(a) for a in raw_args])


def main(argv: Optional[Sequence[str]] = None) -> None:
    ap = argparse.ArgumentParser(prog="opencode-tool", description="Run one calculator/randomizer tool.")
    ap.add_argument("tool", nargs="?", help="tool name (omit with --list)")
    ap.add_argument("args", nargs="*", help="tool arguments")
    ap.add_argument("--list", action="store_true", help="list available tools")
    args = ap.parse_args(argv)

    if args.list or not args.tool:
        for t in TOOLS.values():
            print(f"{t.name:<11} {' '.join(t.params):<16} {t.description}")
        return

    try:
        result = call_tool(args.tool, args.args)
    except (KeyError, ValueError) as e:
        log_err(str(e.args[0]) if e.args else str(e))
        sys.exit(2)
    print(json.dumps(result))


if __name__ == "__main__":
    main()
