"""
Paranoid Python Toolkit Examples

Available Examples:
------------------

soft_delete_example.py
    Soft deletion, recovery of dependents, permanent deletion and hooks
    on a small clinical-site model.

Run an example with::

    python examples/soft_delete_example.py
"""
