"""Companion meta file parser.

Each descriptor `Foo.asmdef` has a sibling `Foo.asmdef.meta` whose
`guid: <hex>` line carries the descriptor's unique identifier.
"""

import logging
import re
from uuid import UUID

from ..errors import DescriptorError, MetaFileNotFoundError

logger = logging.getLogger(__name__)

_GUID_RE = re.compile(r"guid: \b(\w+)\b")


class MetaFileParser:
    """Extract the identifier token from a companion meta file."""

    def parse(self, path: str) -> UUID:
        """Read `path` and return the first `guid:` token as a UUID.

        Raises:
            MetaFileNotFoundError: The meta file does not exist.
            DescriptorError: Unreadable file, no guid line, or the token is
                not a valid UUID.
        """
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                text = f.read()
        except FileNotFoundError as e:
            raise MetaFileNotFoundError(path) from e
        except OSError as e:
            raise DescriptorError(path, f"cannot read meta file: {e}") from e

        return self.parse_text(text, path)

    def parse_text(self, text: str, path: str = "<meta>") -> UUID:
        match = _GUID_RE.search(text)
        if not match:
            raise DescriptorError(path, "no 'guid:' line found")

        token = match.group(1)
        try:
            return UUID(token)
        except ValueError as e:
            raise DescriptorError(path, f"invalid guid '{token}'") from e
