"""boqunits - unit registry and BOQ unit normalization tooling."""

__version__ = "0.1.0"
