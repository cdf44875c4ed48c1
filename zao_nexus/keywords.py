"""Static keyword, domain and colour tables used by the tagging engine.

The module-level dictionaries are the shipped defaults. Callers never read them
directly; they are bundled into a :class:`TaggingTables` instance which is handed
to :class:`~zao_nexus.extractor.TagExtractor` and the registry helpers, so tests
can substitute a controlled keyword set.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .models import CategoryMapping

TAG_COLORS: dict[str, str] = {
    "development": "#3498db",
    "finance": "#2ecc71",
    "health": "#e74c3c",
    "technology": "#9b59b6",
    "education": "#f1c40f",
    "news": "#34495e",
    "social": "#1abc9c",
    "entertainment": "#e67e22",
    "business": "#7f8c8d",
    "design": "#8e44ad",
    "web3": "#2980b9",
    "blockchain": "#27ae60",
    "ethereum": "#8e44ad",
    "music": "#f39c12",
    "zao": "#c0392b",
}

KEYWORD_MAPS: dict[str, tuple[str, ...]] = {
    "development": (
        "code", "programming", "developer", "software", "github", "git",
        "repository", "coding", "development",
    ),
    "finance": (
        "money", "invest", "stock", "crypto", "financial", "bank", "trading",
        "finance", "investment", "economics",
    ),
    "health": (
        "fitness", "exercise", "diet", "workout", "health", "medical", "wellness",
        "nutrition", "healthcare",
    ),
    "technology": (
        "tech", "technology", "ai", "artificial intelligence", "machine learning",
        "innovation", "digital",
    ),
    "education": (
        "learn", "course", "tutorial", "education", "training", "university",
        "school", "teaching", "study",
    ),
    "news": (
        "news", "article", "blog", "post", "update", "report", "journalism",
        "media", "press",
    ),
    "social": (
        "social", "community", "network", "forum", "discussion", "platform",
        "connect", "group",
    ),
    "entertainment": (
        "game", "movie", "music", "video", "stream", "entertainment", "play",
        "fun", "gaming",
    ),
    "business": (
        "business", "company", "startup", "enterprise", "corporate", "industry",
        "market", "commerce",
    ),
    "design": (
        "design", "ui", "ux", "interface", "graphic", "art", "creative", "visual",
        "layout",
    ),
    "web3": (
        "web3", "blockchain", "crypto", "ethereum", "token", "nft", "dao", "defi",
        "decentralized",
    ),
    "music": (
        "music", "song", "track", "album", "artist", "playlist", "audio", "band",
        "concert",
    ),
    "festival": (
        "festival", "event", "concert", "performance", "live", "show", "stage", "tour",
    ),
    "zao": ("zao", "thezao", "zaofestivals", "zverse", "zao-chella"),
}

DOMAIN_TAG_MAPPINGS: dict[str, tuple[str, ...]] = {
    "github.com": ("development", "code", "opensource"),
    "ethereum.org": ("ethereum", "blockchain", "web3"),
    "optimism.io": ("optimism", "ethereum", "layer2"),
    "base.org": ("base", "ethereum", "layer2"),
    "zora.co": ("zora", "nft", "web3"),
    "youtube.com": ("video", "content", "streaming"),
    "twitter.com": ("social", "twitter"),
    "medium.com": ("blog", "article", "content"),
    "discord.com": ("community", "chat", "social"),
    "zao.network": ("zao", "official"),
}

GENERIC_DOMAIN_LABELS: frozenset[str] = frozenset({"com", "org", "net", "io", "co", "app", "dev"})
IGNORED_SUBDOMAINS: frozenset[str] = frozenset({"www", "app", "api", "docs"})
IGNORED_PATH_SEGMENTS: frozenset[str] = frozenset(
    {"api", "docs", "blog", "about", "help", "support"},
)

# (tag, category, subcategory) in lookup order; all share the default priority.
_TAG_CATEGORY_ROWS: tuple[tuple[str, str, str], ...] = (
    ("development", "Development", "Programming"),
    ("programming", "Development", "Programming"),
    ("code", "Development", "Programming"),
    ("github", "Development", "Tools"),
    ("finance", "Finance", "General"),
    ("crypto", "Finance", "Cryptocurrency"),
    ("investing", "Finance", "Investing"),
    ("health", "Health & Fitness", "General"),
    ("fitness", "Health & Fitness", "Fitness"),
    ("nutrition", "Health & Fitness", "Nutrition"),
    ("technology", "Technology", "General"),
    ("ai", "Technology", "AI & ML"),
    ("machine learning", "Technology", "AI & ML"),
    ("education", "Education", "General"),
    ("course", "Education", "Courses"),
    ("tutorial", "Education", "Tutorials"),
    ("news", "News & Media", "General"),
    ("article", "News & Media", "Articles"),
    ("blog", "News & Media", "Blogs"),
    ("social", "Social", "General"),
    ("community", "Social", "Communities"),
    ("forum", "Social", "Forums"),
    ("entertainment", "Entertainment", "General"),
    ("game", "Entertainment", "Games"),
    ("movie", "Entertainment", "Movies"),
    ("music", "Entertainment", "Music"),
    ("business", "Business", "General"),
    ("startup", "Business", "Startups"),
    ("marketing", "Business", "Marketing"),
    ("design", "Design", "General"),
    ("ui", "Design", "UI/UX"),
    ("ux", "Design", "UI/UX"),
)


def default_category_mappings() -> list[CategoryMapping]:
    """Return a fresh copy of the built-in tag-to-category mappings."""
    return [
        CategoryMapping(tag=tag, category=category, subcategory=subcategory)
        for tag, category, subcategory in _TAG_CATEGORY_ROWS
    ]


def _copy_map(source: dict[str, tuple[str, ...]]) -> dict[str, tuple[str, ...]]:
    return dict(source)


@dataclass(frozen=True, slots=True)
class TaggingTables:
    """Immutable bundle of every table the tagging engine consults."""

    keyword_maps: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: _copy_map(KEYWORD_MAPS),
    )
    domain_tags: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: _copy_map(DOMAIN_TAG_MAPPINGS),
    )
    palette: dict[str, str] = field(default_factory=lambda: dict(TAG_COLORS))
    generic_domain_labels: frozenset[str] = GENERIC_DOMAIN_LABELS
    ignored_subdomains: frozenset[str] = IGNORED_SUBDOMAINS
    ignored_path_segments: frozenset[str] = IGNORED_PATH_SEGMENTS


DEFAULT_TABLES = TaggingTables()
