"""Project file synthesis from a shared XML template.

Public API:
    ProjectFileSynthesizer(config).write(node, graph) → str
"""

from .synthesizer import ProjectFileSynthesizer
from .template import load_template, write_document

__all__ = ["ProjectFileSynthesizer", "load_template", "write_document"]
