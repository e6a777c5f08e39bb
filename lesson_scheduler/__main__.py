"""
Entry point for running the scheduler as a module.

Usage:
    python -m lesson_scheduler generate input.json -o output.json
    python -m lesson_scheduler check input.json
    python -m lesson_scheduler view output.json --class p4a
"""

from lesson_scheduler.cli import main

if __name__ == "__main__":
    main()
