"""CLI shim -- delegates to textmining.cli.main().

Usage:
    python run_analysis.py --input-dir ./reports
    python run_analysis.py --input-dir ./reports --n-topics 6
"""

from textmining.cli import main

if __name__ == "__main__":
    main()
