# Lazy imports so `from harmony.core.lockfile import ...` does not pull in
# the whole pipeline (httpx, pydantic config, synthesis).

__all__ = [
    "AssemblyDefinition",
    "AssemblyDefinitionParser",
    "AssemblyGraph",
    "GenerationConfig",
    "GenerationResult",
    "PackageDependency",
    "PackageFileParser",
    "ProjectFileSynthesizer",
    "ProjectGenerationService",
    "build_closure",
    "load_config",
]

_IMPORT_MAP = {
    "AssemblyDefinition": ".descriptor",
    "AssemblyDefinitionParser": ".descriptor",
    "AssemblyGraph": ".descriptor",
    "GenerationConfig": ".config",
    "GenerationResult": ".pipeline",
    "PackageDependency": ".lockfile",
    "PackageFileParser": ".lockfile",
    "ProjectFileSynthesizer": ".synthesis",
    "ProjectGenerationService": ".pipeline",
    "build_closure": ".graph",
    "load_config": ".config",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'harmony.core' has no attribute {name}")
