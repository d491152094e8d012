"""
CLI entry point, when used as a module: `python -m edgeswift`.

Useful for debugging in the IDEs (use the start-mode "Module", module "edgeswift").
"""
from edgeswift import cli

if __name__ == '__main__':
    cli.main()
