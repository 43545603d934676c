"""code_combiner: combine a project's source files and their imports into one XML document."""

__version__ = "0.3.0"
