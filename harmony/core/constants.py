"""Shared constants for project generation.

Template tokens, labelled groups and sentinel values used across
the descriptor, synthesis and download modules.
"""

from uuid import UUID

# =============================================================================
# Built-in placeholders
# =============================================================================

EMPTY_ID = UUID(int=0)
BUILTIN_PATH = "builtin"
GUID_PREFIX = "GUID:"

# =============================================================================
# Descriptor files
# =============================================================================

DESCRIPTOR_PATTERN = "*.asmdef"
META_SUFFIX = ".meta"

# Folders never searched for descriptors
SKIP_DIRECTORIES = frozenset({
    "Library",
    "Temp",
    "Logs",
    "obj",
    "bin",
    "node_modules",
})

# =============================================================================
# Lockfile sources
# =============================================================================

SOURCE_REGISTRY = "registry"
SOURCE_BUILTIN = "builtin"

# =============================================================================
# Template tokens and labels
# =============================================================================

TOKEN_EDITOR_ROOT = "{UnityEditorInstallationPath}"
TOKEN_PROJECT_ROOT = "{ProjectRoot}"
TOKEN_PACKAGE_DESTINATION = "{PackageDestinationFolder}"

MIRROR_TOKEN_NAME = "{PackageName}"
MIRROR_TOKEN_VERSION = "{Version}"
DEFAULT_MIRROR_URL = (
    "https://github.com/needle-mirror/{PackageName}/archive/refs/tags/{Version}.zip"
)

LABEL_REFERENCES = "References"
LABEL_COMPILE = "Compile"
LABEL_ENGINE_PACKAGES = "Engine Packages"
LABEL_FILES_COMPILE = "FilesCompile"

PACKAGE_CACHE_FOLDER = "PackageCache"
PROJECT_EXTENSION = "csproj"
NUPKG_EXTENSION = ".nupkg"
ENGINE_ASSEMBLY_PATTERN = "*.dll"
