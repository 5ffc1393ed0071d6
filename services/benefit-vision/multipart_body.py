"""Unwrap stored multipart/form-data bodies to the uploaded file part.

Some clients upload the whole form body instead of the bare image, so the
stored blob starts with a boundary line rather than image bytes.
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

BOUNDARY_SEARCH_LIMIT = 2048
FILE_FIELD = re.compile(rb'name="file"', re.IGNORECASE)
PART_CONTENT_TYPE = re.compile(rb"Content-Type:\s*([^\r\n]+)", re.IGNORECASE)
HEADER_BOUNDARY = re.compile(r'boundary="?([^\s;"]+)"?', re.IGNORECASE)
HEADER_SEPARATOR = b"\r\n\r\n"


@dataclass
class MultipartFile:
    data: bytes
    content_type: str | None = None


def detect_boundary(body: bytes, content_type: str | None = None) -> str | None:
    """Boundary from the Content-Type header, else from the first ``--`` line."""
    if content_type and "multipart/form-data" in content_type:
        match = HEADER_BOUNDARY.search(content_type)
        if match:
            return match.group(1)

    limit = min(len(body), BOUNDARY_SEARCH_LIMIT)
    for i in range(limit - 1):
        if body[i:i + 2] != b"--":
            continue
        end = i + 2
        while end < len(body) and body[end] not in (0x0D, 0x0A):
            end += 1
        if end > i + 2:
            boundary = body[i + 2:end].decode("ascii", errors="ignore").strip()
            return boundary or None
    return None


def extract_multipart_file(body: bytes, content_type: str | None = None) -> MultipartFile | None:
    """Return the part named "file", or None if the body is not multipart."""
    boundary = detect_boundary(body, content_type)
    if not boundary:
        return None

    marker = b"--" + boundary.encode("ascii", errors="ignore")
    cursor = 0

    while cursor < len(body):
        boundary_index = body.find(marker, cursor)
        if boundary_index == -1:
            break

        section_start = boundary_index + len(marker)
        if body[section_start:section_start + 2] == b"--":
            break
        if body[section_start:section_start + 2] == b"\r\n":
            section_start += 2

        header_end = body.find(HEADER_SEPARATOR, section_start)
        if header_end == -1:
            break

        headers = body[section_start:header_end]
        data_start = header_end + len(HEADER_SEPARATOR)
        if not FILE_FIELD.search(headers):
            cursor = data_start
            continue

        next_boundary = body.find(marker, data_start)
        if next_boundary == -1:
            next_boundary = len(body)
        data_end = next_boundary
        if body[data_end - 2:data_end] == b"\r\n":
            data_end -= 2

        type_match = PART_CONTENT_TYPE.search(headers)
        part_type = type_match.group(1).decode("latin-1").strip() if type_match else None
        logger.debug("Unwrapped multipart file part: %d bytes (%s)", data_end - data_start, part_type)
        return MultipartFile(data=body[data_start:data_end], content_type=part_type)

    return None
