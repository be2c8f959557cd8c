"""Project template helpers: ElementTree, namespace-agnostic.

Templates may or may not declare the MSBuild namespace. Lookups ignore
namespaces; new elements are created in the template root's namespace so
the written document stays consistent.
"""

import logging
import threading
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from ..errors import TemplateStructureError

logger = logging.getLogger(__name__)


_namespace_lock = threading.Lock()
_registered_namespaces = set()


def register_default_namespace(uri: str) -> None:
    """Write `uri` as the default (unprefixed) namespace.

    ElementTree keeps one process-wide prefix map; each uri is registered
    there once, under a lock.
    """
    with _namespace_lock:
        if uri in _registered_namespaces:
            return
        ET.register_namespace("", uri)
        _registered_namespaces.add(uri)


def strip_namespace(tag: str) -> str:
    """Remove the namespace part of a tag.

    '{http://schemas.microsoft.com/developer/msbuild/2003}ItemGroup' -> 'ItemGroup'
    """
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def namespace_of(element: ET.Element) -> str:
    """'{uri}' prefix of an element's tag, or '' when it has none."""
    if element.tag.startswith("{"):
        return element.tag.split("}", 1)[0] + "}"
    return ""


def find_all(root: ET.Element, local_name: str) -> List[ET.Element]:
    """All descendants (and root itself) with the given local name."""
    return [node for node in root.iter() if strip_namespace(node.tag) == local_name]


def find_first(root: ET.Element, local_name: str) -> Optional[ET.Element]:
    for node in root.iter():
        if strip_namespace(node.tag) == local_name:
            return node
    return None


def require_first(root: ET.Element, local_name: str, template: str) -> ET.Element:
    element = find_first(root, local_name)
    if element is None:
        raise TemplateStructureError(template, f"<{local_name}> element")
    return element


def find_labelled_group(root: ET.Element, label: str) -> Optional[ET.Element]:
    """First <ItemGroup Label="label"> in the document."""
    for group in find_all(root, "ItemGroup"):
        if group.get("Label") == label:
            return group
    return None


def find_parent(root: ET.Element, element: ET.Element) -> Optional[ET.Element]:
    for candidate in root.iter():
        for child in candidate:
            if child is element:
                return candidate
    return None


def remove_element(root: ET.Element, element: ET.Element) -> None:
    parent = find_parent(root, element)
    if parent is None:
        raise ValueError("Cannot remove the document root")
    parent.remove(element)


def make_element(
    root: ET.Element,
    local_name: str,
    attrib: Optional[Dict[str, str]] = None,
    text: Optional[str] = None,
) -> ET.Element:
    """Create a detached element in `root`'s namespace."""
    element = ET.Element(namespace_of(root) + local_name, attrib or {})
    if text is not None:
        element.text = text
    return element


def sub_element(
    parent: ET.Element,
    local_name: str,
    attrib: Optional[Dict[str, str]] = None,
    text: Optional[str] = None,
) -> ET.Element:
    element = ET.SubElement(parent, namespace_of(parent) + local_name, attrib or {})
    if text is not None:
        element.text = text
    return element


def load_template(path: str) -> ET.ElementTree:
    """Parse the template into a new tree. Callers own the returned tree.

    Raises:
        FileNotFoundError: The template does not exist.
        TemplateStructureError: The template is not well-formed XML.
    """
    try:
        tree = ET.parse(path)
    except ET.ParseError as e:
        raise TemplateStructureError(path, f"well-formed XML ({e})") from e

    namespace = namespace_of(tree.getroot())
    if namespace:
        # Write the template namespace back as the default one instead of ns0:
        register_default_namespace(namespace[1:-1])
    return tree


def write_document(tree: ET.ElementTree, path: str) -> None:
    ET.indent(tree, space="  ")
    tree.write(path, encoding="utf-8", xml_declaration=True)
