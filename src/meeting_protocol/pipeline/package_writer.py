"""
Office Open XML package assembly.

The package is the minimal set of parts Word needs to open the protocol:

    [Content_Types].xml            default extensions + main part override
    _rels/.rels                    root relationship -> word/document.xml
    word/_rels/document.xml.rels   one image relationship per media entry
    word/document.xml              composed markup
    word/media/*.png               company QR + rendered voter QRs

Relationship ids referenced by the markup (`r:embed`) and the ids declared
in the manifest must match one to one; the writer checks this before
zipping and refuses to emit a package otherwise.
"""

import base64
import binascii
import re
import xml.etree.ElementTree as ET
import zipfile
from dataclasses import dataclass, field
from io import BytesIO

from ..errors import PackagingError

CONTENT_TYPES_PATH = '[Content_Types].xml'
ROOT_RELS_PATH = '_rels/.rels'
DOCUMENT_PATH = 'word/document.xml'
DOCUMENT_RELS_PATH = 'word/_rels/document.xml.rels'

DOCUMENT_CONTENT_TYPE = (
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document.main+xml'
)
RELATIONSHIPS_CONTENT_TYPE = 'application/vnd.openxmlformats-package.relationships+xml'
PNG_CONTENT_TYPE = 'image/png'

OFFICE_DOCUMENT_REL_TYPE = (
    'http://schemas.openxmlformats.org/officeDocument/2006/relationships/officeDocument'
)
IMAGE_REL_TYPE = 'http://schemas.openxmlformats.org/officeDocument/2006/relationships/image'

PACKAGE_RELS_NS = 'http://schemas.openxmlformats.org/package/2006/relationships'
CONTENT_TYPES_NS = 'http://schemas.openxmlformats.org/package/2006/content-types'

# Targets are relative to word/
LOGO_MEDIA_PATH = 'media/company_qr.png'
VOTER_MEDIA_TEMPLATE = 'media/voter_qr_{index}.png'

# Fixed timestamp keeps identical input producing identical bytes
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)

_EMBED_RE = re.compile(r'r:embed="([^"]*)"')
_FILENAME_UNSAFE_RE = re.compile(r'[^a-zA-Zа-яА-ЯёЁ0-9]')


@dataclass(frozen=True)
class RelationshipEntry:
    """One image relationship of the main document part."""

    id: str
    target: str
    content_type: str = PNG_CONTENT_TYPE

    @property
    def part_name(self) -> str:
        return f'word/{self.target}'


@dataclass(frozen=True)
class MediaEntry:
    """A rendered image bound to its relationship."""

    relationship: RelationshipEntry
    data: bytes


@dataclass
class ImageReferences:
    """
    Relationship ids handed to the composer and media handed to the writer.

    `voter_ids` maps a voter's position in the vote-record list to its id;
    voters whose QR failed to render are absent.
    """

    logo_id: str
    voter_ids: dict[int, str] = field(default_factory=dict)
    media: list[MediaEntry] = field(default_factory=list)

    @property
    def relationships(self) -> list[RelationshipEntry]:
        return [m.relationship for m in self.media]


class RelationshipIdAllocator:
    """
    Hands out `rId<n>` ids in increasing order.

    Reserved ids are never returned by `allocate()`; an id can be handed out
    or reserved only once.
    """

    def __init__(self, reserved: tuple[str, ...] = (), start: int = 1):
        self._next = start
        self._taken: set[str] = set()
        for rel_id in reserved:
            self.reserve(rel_id)

    def reserve(self, rel_id: str) -> str:
        if rel_id in self._taken:
            raise PackagingError(
                "Relationship id already in use",
                context={'relationship_id': rel_id},
            )
        self._taken.add(rel_id)
        return rel_id

    def allocate(self) -> str:
        while f'rId{self._next}' in self._taken:
            self._next += 1
        return self.reserve(f'rId{self._next}')

    @property
    def taken(self) -> frozenset[str]:
        return frozenset(self._taken)


def decode_image(encoded: str) -> bytes:
    """Base64 (optionally a `data:` URL) to raw bytes."""
    if encoded.startswith('data:'):
        encoded = encoded.split(',', 1)[1]
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PackagingError(f"Invalid base64 image data: {e}") from e


def sanitize_filename_segment(value: str) -> str:
    """Replace everything except Latin/Cyrillic letters and digits with `_`."""
    return _FILENAME_UNSAFE_RE.sub('_', value)


def protocol_filename(prefix: str, number: int, address: str) -> str:
    return f'{prefix}_{number}_{sanitize_filename_segment(address)}.docx'


class PackageWriter:
    """
    Assigns image relationship ids and writes the `.docx` archive.

    A writer holds no state between calls; each generation gets its own
    allocator.
    """

    def assign_image_ids(
        self,
        logo_image: str,
        voter_images: list[str | None],
    ) -> ImageReferences:
        """
        Bind rendered images to relationship ids in one ordered pass.

        Args:
            logo_image: Base64 company QR
            voter_images: Base64 voter QRs by vote-record position
                          (None where rendering failed)

        Returns:
            ImageReferences with ids for the composer and media for `build`
        """
        allocator = RelationshipIdAllocator()

        logo = RelationshipEntry(id=allocator.allocate(), target=LOGO_MEDIA_PATH)
        refs = ImageReferences(logo_id=logo.id)
        refs.media.append(MediaEntry(relationship=logo, data=decode_image(logo_image)))

        for index, encoded in enumerate(voter_images):
            if encoded is None:
                continue
            entry = RelationshipEntry(
                id=allocator.allocate(),
                target=VOTER_MEDIA_TEMPLATE.format(index=index),
            )
            refs.voter_ids[index] = entry.id
            refs.media.append(MediaEntry(relationship=entry, data=decode_image(encoded)))

        return refs

    # -------------------------------------------------------------------------
    # Manifests
    # -------------------------------------------------------------------------

    def content_types_xml(self) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            f'<Types xmlns="{CONTENT_TYPES_NS}">'
            f'<Default Extension="rels" ContentType="{RELATIONSHIPS_CONTENT_TYPE}"/>'
            '<Default Extension="xml" ContentType="application/xml"/>'
            f'<Default Extension="png" ContentType="{PNG_CONTENT_TYPE}"/>'
            f'<Override PartName="/{DOCUMENT_PATH}" ContentType="{DOCUMENT_CONTENT_TYPE}"/>'
            '</Types>'
        )

    def root_relationships_xml(self) -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            f'<Relationships xmlns="{PACKAGE_RELS_NS}">'
            f'<Relationship Id="rId1" Type="{OFFICE_DOCUMENT_REL_TYPE}" Target="{DOCUMENT_PATH}"/>'
            '</Relationships>'
        )

    def document_relationships_xml(self, relationships: list[RelationshipEntry]) -> str:
        entries = ''.join(
            f'<Relationship Id="{rel.id}" Type="{IMAGE_REL_TYPE}" Target="{rel.target}"/>'
            for rel in relationships
        )
        return (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
            f'<Relationships xmlns="{PACKAGE_RELS_NS}">{entries}</Relationships>'
        )

    # -------------------------------------------------------------------------
    # Validation and output
    # -------------------------------------------------------------------------

    def verify(self, markup: str, media: list[MediaEntry]) -> None:
        """
        Check markup well-formedness and the markup/manifest id bijection.

        Raises:
            PackagingError: On malformed markup, duplicate manifest ids or
                            ids present on only one side
        """
        try:
            ET.fromstring(markup.encode('utf-8'))
        except ET.ParseError as e:
            raise PackagingError(f"Document markup is not well-formed: {e}") from e

        manifest_ids = [m.relationship.id for m in media]
        if len(set(manifest_ids)) != len(manifest_ids):
            raise PackagingError(
                "Duplicate relationship ids in manifest",
                context={'relationship_ids': manifest_ids},
            )

        referenced = set(_EMBED_RE.findall(markup))
        declared = set(manifest_ids)
        if referenced != declared:
            raise PackagingError(
                "Markup and relationship manifest disagree",
                context={
                    'unresolved': sorted(referenced - declared),
                    'unreferenced': sorted(declared - referenced),
                },
            )

        targets = [m.relationship.target for m in media]
        if len(set(targets)) != len(targets):
            raise PackagingError("Duplicate media targets", context={'targets': targets})

    def build(self, markup: str, media: list[MediaEntry]) -> bytes:
        """
        Assemble the archive in memory.

        Args:
            markup: Complete word/document.xml
            media: Images with their relationships

        Returns:
            Raw .docx bytes

        Raises:
            PackagingError: If verification or zipping fails
        """
        self.verify(markup, media)

        parts: list[tuple[str, bytes]] = [
            (CONTENT_TYPES_PATH, self.content_types_xml().encode('utf-8')),
            (ROOT_RELS_PATH, self.root_relationships_xml().encode('utf-8')),
            (DOCUMENT_PATH, markup.encode('utf-8')),
            (
                DOCUMENT_RELS_PATH,
                self.document_relationships_xml([m.relationship for m in media]).encode('utf-8'),
            ),
        ]
        parts.extend((m.relationship.part_name, m.data) for m in media)

        buffer = BytesIO()
        try:
            with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
                for name, data in parts:
                    info = zipfile.ZipInfo(name, date_time=ZIP_TIMESTAMP)
                    info.compress_type = zipfile.ZIP_DEFLATED
                    archive.writestr(info, data)
        except (zipfile.BadZipFile, OSError, ValueError) as e:
            raise PackagingError(f"Failed to write package: {e}") from e

        return buffer.getvalue()
