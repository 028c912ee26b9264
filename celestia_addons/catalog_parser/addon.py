"""Validation of add-on submissions and their catalog contents."""
from __future__ import annotations

import logging
import shutil
import tempfile
import zipfile
from collections.abc import Callable
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Union

from .scanner import decode_catalog_bytes, scan_directory

logger = logging.getLogger(__name__)

RELATED_PATHS_THRESHOLD = 50
DATE_FORMAT = "%Y/%m/%d %H:%M:%S"
ITEM_ID_LENGTH = 36
SHORT_ID_MAX_LENGTH = 8
HEX_DIGITS = "0123456789ABCDEF"
ITEM_TYPES = ("addon", "script")
RICH_DESCRIPTION_DIR = "rich_description"


class ValidatorError(Exception):
    """Base class for add-on submission problems."""


class MissingFieldError(ValidatorError):
    def __init__(self, field_name: str) -> None:
        super().__init__(f"Missing fields, field name: {field_name}")
        self.field_name = field_name


class InvalidFieldError(ValidatorError):
    def __init__(self, field_name: str, value: str) -> None:
        super().__init__(f"Invalid value for {field_name}: {value!r}")
        self.field_name = field_name


class IdRequirementError(ValidatorError):
    pass


class RichDescriptionError(ValidatorError):
    pass


class UnzippingError(ValidatorError):
    pass


class RemoteLookupError(ValidatorError):
    pass


class BadDemoObjectError(ValidatorError):
    def __init__(self, supported_paths: list[str]) -> None:
        super().__init__(f"Bad demo object name, should be one of {supported_paths}")
        self.supported_paths = supported_paths


class BadTypeError(ValidatorError):
    def __init__(self, item_type: str) -> None:
        super().__init__(f"Type should be either script or addon, got {item_type}")
        self.item_type = item_type


class ChangeTypeError(ValidatorError):
    def __init__(self) -> None:
        super().__init__("Cannot change type of an existing item")


@dataclass
class AddonContents:
    """Distinct object paths declared by an add-on's catalog files."""

    related_object_paths: list[str]
    needs_related_paths_update: bool


@dataclass
class Image:
    path: Path
    caption: str | None = None


@dataclass
class RichDescription:
    base: str
    cover_image: Image
    notes: list[str] | None = None
    note_type: str | None = None
    detail_images: list[Image] | None = None
    youtube_ids: list[str] | None = None
    additional_leading_html: str | None = None
    additional_trailing_html: str | None = None


@dataclass
class RemoveItem:
    id: str


@dataclass
class CreateItem:
    title: str
    category: str
    authors: list[str]
    description: str
    release_date: datetime
    cover_image: Path
    addon: Path
    type: str
    id_requirement: str | None = None
    demo_object_name: str | None = None
    last_update_date: datetime | None = None
    rich_description: RichDescription | None = None
    main_script_name: str | None = None
    related_object_paths: list[str] | None = None


@dataclass
class UpdateItem:
    id: str
    title: str | None = None
    category: str | None = None
    authors: list[str] | None = None
    description: str | None = None
    demo_object_name: str | None = None
    release_date: datetime | None = None
    last_update_date: datetime | None = None
    cover_image: Path | None = None
    addon: Path | None = None
    rich_description: RichDescription | None = None
    main_script_name: str | None = None
    remove_rich_description: bool = False
    related_object_paths: list[str] | None = None


ItemOperation = Union[RemoveItem, CreateItem, UpdateItem]
RemoteLookup = Callable[[str], AddonContents]


# ---------------------------------------------------------------------------
# Flat-file field readers
# ---------------------------------------------------------------------------

def read_string(directory: Path, filename: str) -> str | None:
    path = directory / filename
    if not path.is_file():
        return None
    decoded = decode_catalog_bytes(path.read_bytes())
    if decoded is None:
        raise InvalidFieldError(filename, "undecodable content")
    text, _ = decoded
    return text.strip()


def read_string_list(directory: Path, filename: str) -> list[str] | None:
    content = read_string(directory, filename)
    if content is None:
        return None
    return [line for line in content.replace("\r\n", "\n").split("\n") if line]


def read_date(directory: Path, filename: str) -> datetime | None:
    """Read a ``YYYY/MM/DD HH:MM:SS`` GMT timestamp."""
    content = read_string(directory, filename)
    if content is None:
        return None
    try:
        return datetime.strptime(content, DATE_FORMAT).replace(tzinfo=UTC)
    except ValueError as exc:
        raise InvalidFieldError(filename, content) from exc


def _optional_file(directory: Path, filename: str) -> Path | None:
    path = directory / filename
    return path if path.is_file() else None


# ---------------------------------------------------------------------------
# Archive handling
# ---------------------------------------------------------------------------

def unpack_archive(archive: Path, destination: Path) -> None:
    try:
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(destination)
    except (zipfile.BadZipFile, OSError) as exc:
        raise UnzippingError(f"Error unzipping item: {archive}") from exc


def find_content_root(path: Path) -> Path:
    """Descend through single-directory wrappers around the real content."""
    base = path
    while True:
        entries = list(base.iterdir())
        if len(entries) != 1:
            return base
        candidate = entries[0]
        if not candidate.is_dir() or candidate.name == RICH_DESCRIPTION_DIR:
            return base
        base = candidate


def collect_related_object_paths(archive: Path) -> AddonContents:
    """Scan the catalog files inside an add-on archive.

    The distinct paths are returned sorted. Add-ons declaring fewer than
    ``RELATED_PATHS_THRESHOLD`` of them get the list stored with the item.
    """
    with tempfile.TemporaryDirectory(prefix="addon_") as tmp_dir:
        unpack_archive(archive, Path(tmp_dir))
        outcome = scan_directory(Path(tmp_dir))
    paths = outcome.unique_object_paths()
    logger.debug("Found %d distinct object paths in %s", len(paths), archive)
    return AddonContents(
        related_object_paths=paths,
        needs_related_paths_update=len(paths) < RELATED_PATHS_THRESHOLD,
    )


def _addon_contents(
    addon: Path | None,
    item_id: str | None,
    remote_lookup: RemoteLookup | None,
) -> AddonContents:
    if addon is not None:
        return collect_related_object_paths(addon)
    if item_id is None or remote_lookup is None:
        raise RemoteLookupError("No add-on archive given and no remote lookup available")
    return remote_lookup(item_id)


def _check_demo_object(demo_object_name: str | None, contents: AddonContents) -> None:
    if demo_object_name is not None and demo_object_name not in contents.related_object_paths:
        raise BadDemoObjectError(contents.related_object_paths)


# ---------------------------------------------------------------------------
# Submission validation
# ---------------------------------------------------------------------------

def read_rich_description(directory: Path) -> RichDescription:
    base = read_string(directory, "base.txt")
    if base is None:
        raise MissingFieldError(f"{RICH_DESCRIPTION_DIR}/base.txt")
    cover_path = _optional_file(directory, "cover_image.jpg")
    if cover_path is None:
        raise MissingFieldError(f"{RICH_DESCRIPTION_DIR}/cover_image.jpg")
    images: list[Image] = []
    while True:
        image_path = _optional_file(directory, f"detail_image_{len(images)}.jpg")
        if image_path is None:
            break
        caption = read_string(directory, f"detail_image_{len(images)}.txt")
        images.append(Image(path=image_path, caption=caption))
    return RichDescription(
        base=base,
        cover_image=Image(path=cover_path, caption=read_string(directory, "cover_image.txt")),
        notes=read_string_list(directory, "notes.txt"),
        note_type=read_string(directory, "note_type.txt"),
        detail_images=images or None,
        youtube_ids=read_string_list(directory, "youtube_ids.txt"),
        additional_leading_html=read_string(directory, "additional_leading.html"),
        additional_trailing_html=read_string(directory, "additional_trailing.html"),
    )


def _modifies_existing(id_requirement: str | None) -> bool:
    if id_requirement is None:
        return False
    if len(id_requirement) == ITEM_ID_LENGTH:
        return True
    if not all(char in HEX_DIGITS for char in id_requirement):
        raise IdRequirementError("Incorrect ID requirement format")
    if len(id_requirement) > SHORT_ID_MAX_LENGTH:
        raise IdRequirementError("Incorrect ID requirement format")
    return False


def validate_directory(
    path: Path, remote_lookup: RemoteLookup | None = None
) -> ItemOperation:
    """Turn an unpacked submission directory into an item operation."""
    category = read_string(path, "category.txt")
    id_requirement = read_string(path, "id_requirement.txt")
    if id_requirement is None:
        id_requirement = read_string(path, "id.txt")

    if category is not None and category in ("", "remove"):
        if id_requirement is None or len(id_requirement) != ITEM_ID_LENGTH:
            raise IdRequirementError("No ID or incorrect ID provided for add-on removal")
        return RemoveItem(id=id_requirement)

    authors = read_string_list(path, "authors.txt")
    release_date = read_date(path, "release_date.txt")
    last_update_date = read_date(path, "last_update_date.txt")
    demo_object_name = read_string(path, "demo_object_name.txt")
    item_type = read_string(path, "type.txt")
    main_script_name = read_string(path, "main_script_name.txt")
    title = read_string(path, "title.txt")
    description = read_string(path, "description.txt")
    addon = _optional_file(path, "addon.zip")
    cover_image = _optional_file(path, "cover_image.jpg")
    modifying_existing = _modifies_existing(id_requirement)

    remove_rich_description = read_string(path, "remove_rich_description.txt") == "remove"
    rich_description: RichDescription | None = None
    rich_dir = path / RICH_DESCRIPTION_DIR
    if rich_dir.is_dir():
        if remove_rich_description:
            raise RichDescriptionError(
                "Rich description should be empty when remove_rich_description is on"
            )
        rich_description = read_rich_description(rich_dir)

    if not modifying_existing:
        if remove_rich_description:
            raise RichDescriptionError(
                "remove_rich_description should not be on when creating an item"
            )
        required: list[tuple[str, object]] = [
            ("title.txt", title),
            ("description.txt", description),
            ("category.txt", category),
            ("authors.txt", authors),
            ("release_date.txt", release_date),
            ("cover_image.jpg", cover_image),
            ("addon.zip", addon),
        ]
        for field_name, value in required:
            if value is None:
                raise MissingFieldError(field_name)
        if item_type not in ITEM_TYPES:
            raise BadTypeError(item_type or "none")
        contents = collect_related_object_paths(addon)
        _check_demo_object(demo_object_name, contents)
        return CreateItem(
            title=title,
            category=category,
            authors=authors,
            description=description,
            release_date=release_date,
            cover_image=cover_image,
            addon=addon,
            type=item_type,
            id_requirement=id_requirement,
            demo_object_name=demo_object_name,
            last_update_date=last_update_date,
            rich_description=rich_description,
            main_script_name=main_script_name,
            related_object_paths=(
                contents.related_object_paths if contents.needs_related_paths_update else None
            ),
        )

    if item_type not in (None, "none"):
        raise ChangeTypeError()
    contents = _addon_contents(addon, id_requirement, remote_lookup)
    _check_demo_object(demo_object_name, contents)
    return UpdateItem(
        id=id_requirement,
        title=title,
        category=category or None,
        authors=authors,
        description=description,
        demo_object_name=demo_object_name,
        release_date=release_date,
        last_update_date=last_update_date,
        cover_image=cover_image,
        addon=addon,
        rich_description=rich_description,
        main_script_name=main_script_name,
        remove_rich_description=remove_rich_description,
        related_object_paths=(
            contents.related_object_paths if contents.needs_related_paths_update else None
        ),
    )


def validate_archive(
    archive: Path,
    remote_lookup: RemoteLookup | None = None,
    *,
    workdir: Path | None = None,
) -> ItemOperation:
    """Unpack a submission archive and validate its content directory.

    The unpacked files stay in ``workdir`` (a fresh temporary directory by
    default) because the returned operation refers to them. A temporary
    directory is removed again when the archive cannot be unpacked.
    """
    destination = workdir or Path(tempfile.mkdtemp(prefix="submission_"))
    destination.mkdir(parents=True, exist_ok=True)
    try:
        unpack_archive(archive, destination)
    except UnzippingError:
        if workdir is None:
            shutil.rmtree(destination, ignore_errors=True)
        raise
    root = find_content_root(destination)
    logger.debug("Validating submission content at %s", root)
    return validate_directory(root, remote_lookup)


def operation_name(operation: ItemOperation) -> str:
    if isinstance(operation, RemoveItem):
        return "remove"
    if isinstance(operation, CreateItem):
        return "create"
    return "update"


def _jsonable(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    return value


def operation_to_dict(operation: ItemOperation) -> dict[str, Any]:
    return {"operation": operation_name(operation), "item": _jsonable(asdict(operation))}
