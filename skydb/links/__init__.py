"""Links: the binary identifiers that address content and registry entries.

Two variants share one 34-byte envelope (2-byte bitfield + 32-byte root):
- Content links (version 1) address immutable bytes directly
- Entry links (version 2) address a registry entry by its entry ID
"""

from skydb.links.codec import (
    BASE32_ENCODED_LINK_SIZE,
    BASE64_ENCODED_LINK_SIZE,
    DELETION_ENTRY_DATA,
    RAW_LINK_SIZE,
    URI_SKYNET_PREFIX,
    Link,
    LinkVersion,
    convert_base32_to_base64,
    convert_base64_to_base32,
    decode_link,
    derive_entry_id,
    format_link,
    format_uri,
    is_deletion_sentinel,
    new_content_link,
    new_entry_link,
    trim_uri_prefix,
)
from skydb.links.parse import ParsedLink, parse_link

__all__ = [
    "BASE32_ENCODED_LINK_SIZE",
    "BASE64_ENCODED_LINK_SIZE",
    "DELETION_ENTRY_DATA",
    "RAW_LINK_SIZE",
    "URI_SKYNET_PREFIX",
    "Link",
    "LinkVersion",
    "ParsedLink",
    "convert_base32_to_base64",
    "convert_base64_to_base32",
    "decode_link",
    "derive_entry_id",
    "format_link",
    "format_uri",
    "is_deletion_sentinel",
    "new_content_link",
    "new_entry_link",
    "parse_link",
    "trim_uri_prefix",
]
