"""Extension surfaces for embedding runtimes."""

from .native import calculate_delay, constant_delay, exponential_delay, fibonacci_delay, seed

__all__ = ["exponential_delay", "calculate_delay", "constant_delay", "fibonacci_delay", "seed"]
