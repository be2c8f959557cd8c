"""Tests for project file synthesis.

Tests cover:
- Token substitution in hint paths and Copy destinations
- Warning level / unsafe code leaves
- References group in project and package modes
- Compile, Engine Packages and FilesCompile groups
- Fatal errors on missing template structure
- Namespaced templates
"""

import os
import xml.etree.ElementTree as ET
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch
from uuid import uuid4

import pytest

from harmony.core.config import GenerationConfig, ReferenceMode
from harmony.core.descriptor import AssemblyDefinition, ParsedDescriptor, link_references
from harmony.core.errors import TemplateStructureError
from harmony.core.synthesis import ProjectFileSynthesizer
from harmony.core.synthesis.template import find_all, find_labelled_group, strip_namespace


TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <WarningLevel>4</WarningLevel>
    <AllowUnsafeBlocks>false</AllowUnsafeBlocks>
  </PropertyGroup>
  <ItemGroup Label="Engine Packages">
    <Reference Include="UnityEngine">
      <HintPath>{UnityEditorInstallationPath}/Managed/UnityEngine.dll</HintPath>
    </Reference>
    <Reference Include="UnityEngine.UI">
      <HintPath>{ProjectRoot}/Library/ScriptAssemblies/UnityEngine.UI.dll</HintPath>
    </Reference>
  </ItemGroup>
  <Target Name="CopyPackage">
    <Copy SourceFiles="out.nupkg" DestinationFolder="{PackageDestinationFolder}" />
  </Target>
</Project>
"""

NAMESPACED_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<Project xmlns="http://schemas.microsoft.com/developer/msbuild/2003">
  <PropertyGroup>
    <WarningLevel>4</WarningLevel>
    <AllowUnsafeBlocks>false</AllowUnsafeBlocks>
  </PropertyGroup>
  <ItemGroup Label="Engine Packages" />
</Project>
"""


def _config(tmp_path, template=TEMPLATE, mode=ReferenceMode.PROJECT):
    template_path = tmp_path / "DefaultProject.csproj.default"
    template_path.write_text(template)
    return GenerationConfig(
        project_root=tmp_path,
        editor_root="/opt/editor",
        template_path=template_path,
        engine_assemblies_dir=tmp_path / "Engine",
        reference_mode=mode,
    )


def _graph(tmp_path, nodes):
    """nodes: [(name, [reference names], dict of attributes)]"""
    parsed = []
    for name, refs, attrs in nodes:
        folder = tmp_path / "Assets" / name
        folder.mkdir(parents=True, exist_ok=True)
        definition = AssemblyDefinition(
            id=uuid4(),
            name=name,
            path_location=str(folder / f"{name}.asmdef"),
            **attrs,
        )
        parsed.append(ParsedDescriptor(definition=definition, raw_references=refs))
    return link_references(parsed)


def _text(root, local_name):
    return [e.text for e in find_all(root, local_name)]


class TestLeaves:
    def test_hint_path_tokens_replaced(self, tmp_path):
        graph = _graph(tmp_path, [("Game", [], {})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()

        hints = _text(root, "HintPath")
        assert "/opt/editor/Managed/UnityEngine.dll" in hints
        assert f"{tmp_path}/Library/ScriptAssemblies/UnityEngine.UI.dll" in hints
        assert not any("{" in h for h in hints)

    def test_copy_destination_replaced(self, tmp_path):
        graph = _graph(tmp_path, [("Game", [], {})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()

        copy = find_all(root, "Copy")[0]
        assert copy.get("DestinationFolder") == str(tmp_path / "PackageCache")

    def test_non_user_assembly_warnings_disabled(self, tmp_path):
        graph = _graph(tmp_path, [("Lib", [], {})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()
        assert _text(root, "WarningLevel") == ["0"]

    def test_user_assembly_keeps_warning_level(self, tmp_path):
        graph = _graph(tmp_path, [("Game", [], {"is_user_assembly": True})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()
        assert _text(root, "WarningLevel") == ["4"]

    @pytest.mark.parametrize("flag, expected", [(True, "true"), (False, "false")])
    def test_unsafe_code(self, tmp_path, flag, expected):
        graph = _graph(tmp_path, [("Game", [], {"allow_unsafe_code": flag})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()
        assert _text(root, "AllowUnsafeBlocks") == [expected]


class TestReferences:
    def test_project_references_skip_builtins(self, tmp_path):
        graph = _graph(tmp_path, [
            ("Game", ["Core", "UnityEngine.UI"], {}),
            ("Core", [], {}),
        ])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()

        group = find_labelled_group(root, "References")
        entries = list(group)
        assert len(entries) == 1
        assert strip_namespace(entries[0].tag) == "ProjectReference"
        assert entries[0].get("Include") == str(tmp_path / "Assets" / "Core" / "Core.csproj")

    def test_package_references(self, tmp_path):
        graph = _graph(tmp_path, [
            ("Game", ["Core"], {}),
            ("Core", [], {}),
        ])
        config = _config(tmp_path, mode=ReferenceMode.PACKAGE)
        root = ProjectFileSynthesizer(config).synthesize(graph[0], graph).getroot()

        entry = list(find_labelled_group(root, "References"))[0]
        assert strip_namespace(entry.tag) == "PackageReference"
        assert entry.get("Include") == "Core"
        assert _text(entry, "Source") == [str(tmp_path / "PackageCache" / "Core") + ".nupkg"]

    def test_empty_references_group_still_added(self, tmp_path):
        graph = _graph(tmp_path, [("Game", [], {})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()
        assert list(find_labelled_group(root, "References")) == []

    def test_compile_group_for_precompiled(self, tmp_path):
        dll = str(tmp_path / "Plugins" / "Newtonsoft.Json.dll")
        graph = _graph(tmp_path, [("Game", [], {"precompiled_references": [dll]})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()

        group = find_labelled_group(root, "Compile")
        reference = list(group)[0]
        assert reference.get("Include") == "Newtonsoft.Json"
        assert _text(reference, "HintPath") == [dll]

    def test_no_compile_group_without_precompiled(self, tmp_path):
        graph = _graph(tmp_path, [("Game", [], {})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()
        assert find_labelled_group(root, "Compile") is None


class TestEnginePackages:
    def test_removed_when_no_engine_references(self, tmp_path):
        graph = _graph(tmp_path, [("Game", [], {"no_engine_references": True})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()
        assert find_labelled_group(root, "Engine Packages") is None

    def test_engine_dlls_appended(self, tmp_path):
        engine = tmp_path / "Engine"
        engine.mkdir()
        (engine / "UnityEngine.CoreModule.dll").write_text("")
        (engine / "readme.txt").write_text("")

        graph = _graph(tmp_path, [("Game", [], {})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()

        group = find_labelled_group(root, "Engine Packages")
        includes = [e.get("Include") for e in group]
        assert includes == ["UnityEngine", "UnityEngine.UI", "UnityEngine.CoreModule"]
        assert str(engine / "UnityEngine.CoreModule.dll") in _text(group, "HintPath")

    def test_missing_group_is_fatal(self, tmp_path):
        template = TEMPLATE.replace('Label="Engine Packages"', 'Label="Other"')
        graph = _graph(tmp_path, [("Game", [], {})])
        with pytest.raises(TemplateStructureError, match="Engine Packages"):
            ProjectFileSynthesizer(_config(tmp_path, template)).synthesize(graph[0], graph)


class TestExclusions:
    def test_combined_exclusion_expression(self, tmp_path):
        editor = str(tmp_path / "Assets" / "Game" / "Editor")
        deep = str(tmp_path / "Assets" / "Game" / "A" / "B")
        graph = _graph(tmp_path, [("Game", [], {"excluded_folders": [deep, editor]})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()

        group = find_labelled_group(root, "FilesCompile")
        compile_items = list(group)
        assert len(compile_items) == 1
        assert compile_items[0].get("Remove") == f"{deep}/**/*;{editor}/**/*"

    def test_no_group_without_exclusions(self, tmp_path):
        graph = _graph(tmp_path, [("Game", [], {})])
        root = ProjectFileSynthesizer(_config(tmp_path)).synthesize(graph[0], graph).getroot()
        assert find_labelled_group(root, "FilesCompile") is None


class TestTemplateStructure:
    def test_missing_unsafe_leaf(self, tmp_path):
        template = TEMPLATE.replace("<AllowUnsafeBlocks>false</AllowUnsafeBlocks>", "")
        graph = _graph(tmp_path, [("Game", [], {})])
        with pytest.raises(TemplateStructureError, match="AllowUnsafeBlocks"):
            ProjectFileSynthesizer(_config(tmp_path, template)).synthesize(graph[0], graph)

    def test_missing_warning_level_for_non_user(self, tmp_path):
        template = TEMPLATE.replace("<WarningLevel>4</WarningLevel>", "")
        graph = _graph(tmp_path, [("Lib", [], {})])
        with pytest.raises(TemplateStructureError, match="WarningLevel"):
            ProjectFileSynthesizer(_config(tmp_path, template)).synthesize(graph[0], graph)

    def test_copy_without_destination(self, tmp_path):
        template = TEMPLATE.replace(' DestinationFolder="{PackageDestinationFolder}"', "")
        graph = _graph(tmp_path, [("Game", [], {})])
        with pytest.raises(TemplateStructureError, match="DestinationFolder"):
            ProjectFileSynthesizer(_config(tmp_path, template)).synthesize(graph[0], graph)

    def test_template_loaded_fresh_per_node(self, tmp_path):
        graph = _graph(tmp_path, [("A", ["B"], {}), ("B", [], {"no_engine_references": True})])
        synthesizer = ProjectFileSynthesizer(_config(tmp_path))

        first = synthesizer.synthesize(graph[1], graph).getroot()
        second = synthesizer.synthesize(graph[0], graph).getroot()

        assert find_labelled_group(first, "Engine Packages") is None
        assert find_labelled_group(second, "Engine Packages") is not None
        assert len(find_all(second, "ItemGroup")) == 2


class TestWrite:
    def test_written_next_to_descriptor(self, tmp_path):
        graph = _graph(tmp_path, [("Game", [], {"allow_unsafe_code": True})])
        path = ProjectFileSynthesizer(_config(tmp_path)).write(graph[0], graph)

        assert path == str(tmp_path / "Assets" / "Game" / "Game.csproj")
        root = ET.parse(path).getroot()
        assert _text(root, "AllowUnsafeBlocks") == ["true"]

    def test_namespaced_template_keeps_default_namespace(self, tmp_path):
        dll = str(tmp_path / "Lib.dll")
        graph = _graph(tmp_path, [("Game", [], {"precompiled_references": [dll]})])
        config = _config(tmp_path, NAMESPACED_TEMPLATE)
        path = ProjectFileSynthesizer(config).write(graph[0], graph)

        with open(path, encoding="utf-8") as f:
            content = f.read()
        assert "ns0:" not in content

        root = ET.parse(path).getroot()
        compile_group = find_labelled_group(root, "Compile")
        assert compile_group.tag == "{http://schemas.microsoft.com/developer/msbuild/2003}ItemGroup"
        assert os.path.basename(_text(compile_group, "HintPath")[0]) == "Lib.dll"

    def test_namespace_registered_once_across_threads(self, tmp_path):
        uri = "urn:harmony-test:registration"
        template = NAMESPACED_TEMPLATE.replace(
            "http://schemas.microsoft.com/developer/msbuild/2003", uri
        )
        names = [f"Game{i}" for i in range(8)]
        graph = _graph(tmp_path, [(name, [], {}) for name in names])
        synthesizer = ProjectFileSynthesizer(_config(tmp_path, template))

        with patch.object(ET, "register_namespace", wraps=ET.register_namespace) as register:
            with ThreadPoolExecutor(max_workers=4) as pool:
                paths = list(pool.map(lambda node: synthesizer.write(node, graph), graph))

        assert [c.args for c in register.call_args_list if c.args[1] == uri] == [("", uri)]
        for path in paths:
            with open(path, encoding="utf-8") as f:
                assert "ns0:" not in f.read()
