"""Domain models for rate programs and rating steps.

Import from the submodules directly; ``rate_program`` depends on the wire
schemas, which in turn depend on ``rating_step``.
"""
