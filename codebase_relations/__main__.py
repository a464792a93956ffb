"""
Entry point for running codebase_relations as a module.

Usage: python -m codebase_relations [args]
"""

from codebase_relations.cli import main

if __name__ == "__main__":
    main()
