"""Data models for the link directory document."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from attrs import Factory, define
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .config import DEFAULT_CATEGORY, DEFAULT_SUBCATEGORY, DOCUMENT_VERSION
from .links import favicon_url, generate_link_id, normalize_tag, normalize_url, unique_tags


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _empty_str_list() -> list[str]:
    return []


@dataclass(slots=True)
class LinkMetadata:
    """Bookkeeping owned by the UI/API; the tagging engine never changes it."""

    created_at: str = ""
    updated_at: str = ""
    added_by: str = "admin"
    clicks: int = 0
    popularity: int = 0
    is_archived: bool = False
    is_dead: bool = False
    last_checked: str = ""


@dataclass(slots=True)
class Link:
    """A single directory entry."""

    id: str
    title: str
    url: str
    description: str = ""
    tags: list[str] = field(default_factory=_empty_str_list)
    category: str | None = None
    subcategory: str | None = None
    favicon: str | None = None
    screenshot: str | None = None
    metadata: LinkMetadata = field(default_factory=LinkMetadata)

    def to_model(self) -> LinkModel:
        """Convert the link into its serialisable pydantic model."""
        return LinkModel(
            id=self.id,
            title=self.title,
            url=self.url,
            description=self.description,
            favicon=self.favicon,
            screenshot=self.screenshot,
            tags=list(self.tags),
            category=self.category,
            subcategory=self.subcategory,
            metadata=LinkMetadataModel(
                created_at=self.metadata.created_at,
                updated_at=self.metadata.updated_at,
                added_by=self.metadata.added_by,
                clicks=self.metadata.clicks,
                popularity=self.metadata.popularity,
                is_archived=self.metadata.is_archived,
                is_dead=self.metadata.is_dead,
                last_checked=self.metadata.last_checked,
            ),
        )

    @classmethod
    def from_model(cls, model: LinkModel) -> Link:
        """Create a link from a validated model, filling in a stable id and favicon."""
        meta = model.metadata
        return cls(
            id=model.id or generate_link_id(model.url, model.title),
            title=model.title,
            url=model.url,
            description=model.description,
            tags=unique_tags(model.tags),
            category=model.category,
            subcategory=model.subcategory,
            favicon=model.favicon or favicon_url(model.url),
            screenshot=model.screenshot,
            metadata=LinkMetadata(
                created_at=meta.created_at,
                updated_at=meta.updated_at,
                added_by=meta.added_by,
                clicks=meta.clicks,
                popularity=meta.popularity,
                is_archived=meta.is_archived,
                is_dead=meta.is_dead,
                last_checked=meta.last_checked,
            ),
        )


@dataclass(slots=True)
class TagMeta:
    """Registry entry for a single tag."""

    count: int = 0
    color: str = ""
    related: list[str] = field(default_factory=_empty_str_list)


@dataclass(frozen=True, slots=True)
class Placement:
    """A (category, subcategory) pair in the directory tree."""

    category: str = DEFAULT_CATEGORY
    subcategory: str = DEFAULT_SUBCATEGORY

    def matches(self, category: str, subcategory: str) -> bool:
        return (
            self.category.lower() == category.lower()
            and self.subcategory.lower() == subcategory.lower()
        )


@define(slots=True)
class Subcategory:
    """Tree node holding an ordered list of link ids."""

    name: str
    links: list[str] = Factory(list)
    id: str | None = None
    description: str | None = None

    def remove_link(self, link_id: str) -> bool:
        if link_id in self.links:
            self.links.remove(link_id)
            return True
        return False


@define(slots=True)
class Category:
    """Top-level tree node."""

    name: str
    subcategories: list[Subcategory] = Factory(list)
    id: str | None = None
    description: str | None = None
    icon: str | None = None
    color: str | None = None

    def find_subcategory(self, name: str) -> Subcategory | None:
        wanted = name.lower()
        for subcategory in self.subcategories:
            if subcategory.name.lower() == wanted:
                return subcategory
        return None

    def get_or_create_subcategory(self, name: str) -> Subcategory:
        """Get or create a subcategory, matching names case-insensitively."""
        existing = self.find_subcategory(name)
        if existing is not None:
            return existing
        created = Subcategory(name=name)
        self.subcategories.append(created)
        return created


@dataclass(slots=True)
class DocumentMetadata:
    total_links: int = 0
    total_categories: int = 0
    total_tags: int = 0


@dataclass(slots=True)
class LinksDocument:
    """The whole directory: flat link store, category tree and tag registry."""

    links: list[Link] = field(default_factory=list)
    categories: list[Category] = field(default_factory=list)
    tags: dict[str, TagMeta] = field(default_factory=dict)
    metadata: DocumentMetadata = field(default_factory=DocumentMetadata)
    version: str = DOCUMENT_VERSION
    last_updated: str | None = None

    def link_index(self) -> dict[str, Link]:
        return {link.id: link for link in self.links}

    def find_link(self, link_id: str) -> Link | None:
        for link in self.links:
            if link.id == link_id:
                return link
        return None

    def find_link_by_url(self, url: str) -> Link | None:
        """Find a link whose url matches ``url``, ignoring whitespace and a trailing slash."""
        wanted = normalize_url(url)
        for link in self.links:
            if normalize_url(link.url) == wanted:
                return link
        return None

    def find_category(self, name: str) -> Category | None:
        wanted = name.lower()
        for category in self.categories:
            if category.name.lower() == wanted:
                return category
        return None

    def get_or_create_category(self, name: str) -> Category:
        """Get or create a category, matching names case-insensitively."""
        existing = self.find_category(name)
        if existing is not None:
            return existing
        created = Category(name=name)
        self.categories.append(created)
        return created

    def place_link(self, link: Link, placement: Placement) -> Subcategory:
        """Append ``link`` to the placement's subcategory and sync its labels.

        The link is first removed from wherever it currently sits in the tree so
        the tree and the flat list never disagree.
        """
        self.remove_from_tree(link.id)
        category = self.get_or_create_category(placement.category)
        subcategory = category.get_or_create_subcategory(placement.subcategory)
        subcategory.links.append(link.id)
        link.category = category.name
        link.subcategory = subcategory.name
        return subcategory

    def remove_from_tree(self, link_id: str) -> None:
        for category in self.categories:
            for subcategory in category.subcategories:
                subcategory.remove_link(link_id)

    def prune_empty(self) -> None:
        """Drop subcategories without links, then categories without subcategories."""
        for category in self.categories:
            category.subcategories = [s for s in category.subcategories if s.links]
        self.categories = [c for c in self.categories if c.subcategories]

    def refresh_metadata(self, now: str | None = None) -> None:
        """Recompute the corpus-level counters and stamp ``last_updated``."""
        self.metadata.total_links = len(self.links)
        self.metadata.total_categories = len(self.categories)
        self.metadata.total_tags = len(self.tags)
        self.last_updated = now or utc_now_iso()

    def to_model(self) -> LinksDocumentModel:
        """Convert the document into its serialisable pydantic model."""
        return LinksDocumentModel(
            version=self.version,
            last_updated=self.last_updated,
            metadata=DocumentMetadataModel(
                total_links=self.metadata.total_links,
                total_categories=self.metadata.total_categories,
                total_tags=self.metadata.total_tags,
            ),
            links=[link.to_model() for link in self.links],
            categories=[
                CategoryModel(
                    id=category.id,
                    name=category.name,
                    description=category.description,
                    icon=category.icon,
                    color=category.color,
                    subcategories=[
                        SubcategoryModel(
                            id=sub.id,
                            name=sub.name,
                            description=sub.description,
                            links=list(sub.links),
                        )
                        for sub in category.subcategories
                    ],
                )
                for category in self.categories
            ],
            tags={
                name: TagMetaModel(count=meta.count, color=meta.color, related=list(meta.related))
                for name, meta in self.tags.items()
            },
        )

    @classmethod
    def from_model(cls, model: LinksDocumentModel) -> LinksDocument:
        """Build a document, merging legacy embedded subcategory links into the flat list."""
        document = cls(
            version=model.version,
            last_updated=model.last_updated,
            metadata=DocumentMetadata(
                total_links=model.metadata.total_links,
                total_categories=model.metadata.total_categories,
                total_tags=model.metadata.total_tags,
            ),
            tags={
                name: TagMeta(count=meta.count, color=meta.color, related=list(meta.related))
                for name, meta in model.tags.items()
            },
        )
        index: dict[str, Link] = {}
        for link_model in model.links:
            link = Link.from_model(link_model)
            if link.id not in index:
                index[link.id] = link
                document.links.append(link)

        for category_model in model.categories:
            category = Category(
                name=category_model.name,
                id=category_model.id,
                description=category_model.description,
                icon=category_model.icon,
                color=category_model.color,
            )
            for sub_model in category_model.subcategories:
                subcategory = Subcategory(
                    name=sub_model.name, id=sub_model.id, description=sub_model.description,
                )
                for entry in sub_model.links:
                    if isinstance(entry, str):
                        link_id = entry
                    else:
                        embedded = Link.from_model(entry)
                        link_id = embedded.id
                        if link_id not in index:
                            index[link_id] = embedded
                            document.links.append(embedded)
                    if link_id in subcategory.links:
                        continue
                    subcategory.links.append(link_id)
                    placed = index.get(link_id)
                    if placed is not None:
                        placed.category = category.name
                        placed.subcategory = subcategory.name
                category.subcategories.append(subcategory)
            document.categories.append(category)
        return document


# --- Persisted (JSON) layout ---------------------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkMetadataModel(_CamelModel):
    """Pydantic model for per-link bookkeeping."""

    created_at: str = ""
    updated_at: str = ""
    added_by: str = "admin"
    clicks: int = 0
    popularity: int = 0
    is_archived: bool = False
    is_dead: bool = False
    last_checked: str = ""


class LinkModel(_CamelModel):
    """Pydantic model for a link entry."""

    id: str | None = None
    title: str = ""
    url: str = ""
    description: str = ""
    favicon: str | None = None
    screenshot: str | None = None
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    subcategory: str | None = None
    metadata: LinkMetadataModel = Field(default_factory=LinkMetadataModel)

    @model_validator(mode="before")
    @classmethod
    def _lift_legacy_fields(cls, data: Any) -> Any:
        # Older exports keep createdAt/updatedAt on the link itself.
        if not isinstance(data, dict):
            return data
        data = dict(data)
        legacy = {key: data.pop(key) for key in ("createdAt", "updatedAt") if key in data}
        if legacy:
            metadata = dict(data.get("metadata") or {})
            for key, value in legacy.items():
                metadata.setdefault(key, value)
            data["metadata"] = metadata
        return data

    @field_validator("description", "title", "url", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("tags", mode="before")
    @classmethod
    def _normalise_tags(cls, value: object) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple)):
            return value  # type: ignore[return-value]
        return [normalize_tag(tag) for tag in value if normalize_tag(tag)]


class SubcategoryModel(_CamelModel):
    id: str | None = None
    name: str
    description: str | None = None
    links: list[str | LinkModel] = Field(default_factory=list)


class CategoryModel(_CamelModel):
    id: str | None = None
    name: str
    description: str | None = None
    icon: str | None = None
    color: str | None = None
    subcategories: list[SubcategoryModel] = Field(default_factory=list)


class TagMetaModel(_CamelModel):
    count: int = 0
    color: str = ""
    related: list[str] = Field(default_factory=list)


class DocumentMetadataModel(_CamelModel):
    total_links: int = 0
    total_categories: int = 0
    total_tags: int = 0


class LinksDocumentModel(_CamelModel):
    """Root model of the persisted links document (strict all-or-nothing validation)."""

    version: str = DOCUMENT_VERSION
    last_updated: str | None = None
    metadata: DocumentMetadataModel = Field(default_factory=DocumentMetadataModel)
    links: list[LinkModel] = Field(default_factory=list)
    categories: list[CategoryModel] = Field(default_factory=list)
    tags: dict[str, TagMetaModel] = Field(default_factory=dict)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalise_registry(cls, value: object) -> object:
        # Pre-registry documents store tags as a plain list of names.
        if isinstance(value, list):
            return {normalize_tag(name): {} for name in value if normalize_tag(name)}
        if not isinstance(value, dict):
            return value or {}
        # Keys differing only in case or whitespace collapse into the first entry.
        registry: dict[str, object] = {}
        for name, meta in value.items():
            key = normalize_tag(name)
            if not key:
                continue
            kept = registry.get(key)
            if kept is None:
                registry[key] = meta
            elif isinstance(kept, dict) and isinstance(meta, dict):
                merged = {**meta, **kept}
                counts = (kept.get("count", 0), meta.get("count", 0))
                if all(isinstance(count, int) for count in counts):
                    merged["count"] = sum(counts)
                registry[key] = merged
        return registry


class CategoryMapping(BaseModel):
    """A single tag-to-placement rule used by the category resolver."""

    tag: str
    category: str
    subcategory: str | None = None
    priority: float = 0

    @field_validator("tag", mode="before")
    @classmethod
    def _normalise_tag(cls, value: object) -> str:
        return normalize_tag(value)

    @field_validator("priority", mode="before")
    @classmethod
    def _default_priority(cls, value: object) -> object:
        return 0 if value is None else value
