"""Typed errors raised by the generation pipeline.

Recoverable conditions (missing companion files, failed downloads) are
logged and skipped by callers; everything else propagates.
"""


class HarmonyError(Exception):
    """Base class for all project generation errors."""


class ConfigError(HarmonyError):
    """Configuration is missing or points at unreadable paths."""


class DescriptorError(HarmonyError):
    """An assembly descriptor or its companion meta file is malformed."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class MetaFileNotFoundError(DescriptorError, FileNotFoundError):
    """The companion identifier file next to a descriptor does not exist."""

    def __init__(self, path: str):
        super().__init__(path, "meta file could not be found")


class LockfileError(HarmonyError):
    """The package lockfile is unreadable or structurally invalid."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class ReferenceExpansionError(HarmonyError):
    """A precompiled reference could not be expanded to a single path."""

    def __init__(self, reference: str, message: str):
        self.reference = reference
        super().__init__(message)


class ReferenceNotFoundError(ReferenceExpansionError):
    def __init__(self, reference: str, search_root: str):
        self.search_root = search_root
        super().__init__(
            reference,
            f"Precompiled reference '{reference}' not found under {search_root}",
        )


class AmbiguousReferenceError(ReferenceExpansionError):
    def __init__(self, reference: str, candidates: list):
        self.candidates = list(candidates)
        super().__init__(
            reference,
            f"Precompiled reference '{reference}' is ambiguous: "
            f"{len(self.candidates)} candidates found ({', '.join(self.candidates)})",
        )


class TemplateStructureError(HarmonyError):
    """The project template lacks an element the synthesizer must rewrite."""

    def __init__(self, template: str, element: str):
        self.template = template
        self.element = element
        super().__init__(f"Template {template} has no {element}")
