"""Shared beartype configuration."""

from beartype import BeartypeConf, beartype

# Rating inputs arrive as JSON numbers; an int is accepted wherever a float
# is annotated (PEP 484 implicit numeric tower).
numeric_beartype = beartype(conf=BeartypeConf(is_pep484_tower=True))
