"""Entry point for 'python -m schemaforge' command.

This module allows the SchemaForge CLI to be invoked using
'python -m schemaforge validate ...'.
"""

from schemaforge.cli import main

if __name__ == "__main__":
    main()
