"""XML documents exchanged with the object store."""

import xml.etree.ElementTree as ET
from typing import Dict, Iterable, List, Optional, Tuple


def _local_name(tag: str) -> str:
    """Strip the '{namespace}' prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def _find_text(root: ET.Element, name: str) -> Optional[str]:
    """Find the text of the first descendant named `name`, whatever its namespace."""
    for element in root.iter():
        if _local_name(element.tag) == name:
            return element.text
    return None


def parse_xml(body: bytes) -> ET.Element:
    """Parse a response body, raising ValueError on malformed XML."""
    try:
        return ET.fromstring(body)
    except ET.ParseError as e:
        raise ValueError(f"Malformed XML response: {e}") from e


def parse_upload_id(body: bytes) -> str:
    """Extract UploadId from an InitiateMultipartUploadResult document."""
    upload_id = _find_text(parse_xml(body), "UploadId")
    if not upload_id:
        raise ValueError("UploadId not found in response")
    return upload_id.strip()


def parse_error(body: bytes) -> Optional[Tuple[str, str]]:
    """Return (code, message) if the body is an S3 Error document, else None."""
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return None
    if _local_name(root.tag) != "Error":
        return None
    return (_find_text(root, "Code") or "", _find_text(root, "Message") or "")


def parse_complete_result(body: bytes) -> Dict[str, Optional[str]]:
    """Extract Location, Bucket, Key and ETag from a CompleteMultipartUploadResult."""
    root = parse_xml(body)
    return {
        name.lower(): _find_text(root, name)
        for name in ("Location", "Bucket", "Key", "ETag")
    }


def build_complete_body(parts: Iterable[Tuple[int, str]]) -> bytes:
    """Build the CompleteMultipartUpload document, parts in the given order."""
    root = ET.Element("CompleteMultipartUpload")
    for part_number, etag in parts:
        part = ET.SubElement(root, "Part")
        ET.SubElement(part, "PartNumber").text = str(part_number)
        ET.SubElement(part, "ETag").text = etag
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def parse_complete_body(body: bytes) -> List[Tuple[int, str]]:
    """Read (part number, etag) pairs back out of a CompleteMultipartUpload document."""
    root = parse_xml(body)
    parts = []
    for element in root:
        if _local_name(element.tag) != "Part":
            continue
        number = _find_text(element, "PartNumber")
        etag = _find_text(element, "ETag")
        if number is None or etag is None:
            raise ValueError("Part entry missing PartNumber or ETag")
        parts.append((int(number), etag))
    return parts
