"""Built-in template catalog.

Built-ins ship with the application under fixed ids, are never stored, never
usage-tracked and cannot be edited or deleted.
"""

from types import MappingProxyType
from typing import Mapping

from trove.domain.entities.field_spec import FieldSpec, FieldType
from trove.domain.entities.template import Template

DEFAULT_TEMPLATE_ID = "general"

CONDITION_GRADES = ("Mint", "Near Mint", "Good", "Fair", "Poor")

VINYL_GRADES = (
    "Mint (M)",
    "Near Mint (NM)",
    "Very Good+ (VG+)",
    "Very Good (VG)",
    "Good+ (G+)",
    "Good (G)",
    "Fair (F)",
    "Poor (P)",
)


def _builtin(template_id: str, name: str, description: str, icon: str, fields: list[FieldSpec]) -> Template:
    return Template(
        id=template_id,
        name=name,
        description=description,
        icon=icon,
        fields=fields,
        is_built_in=True,
    )


GENERAL = _builtin(
    "general",
    "General Collection",
    "Basic collection with standard fields",
    "📦",
    [
        FieldSpec("Name", FieldType.TEXT, required=True, description="Item name"),
        FieldSpec("Description", FieldType.PARAGRAPH, description="Item description"),
        FieldSpec("Category", FieldType.TEXT, description="Item category"),
        FieldSpec("Value", FieldType.CURRENCY, description="Estimated value"),
        FieldSpec("Condition", FieldType.SELECT, options=CONDITION_GRADES, description="Item condition"),
        FieldSpec("Notes", FieldType.PARAGRAPH, description="Additional notes"),
    ],
)

VINYL = _builtin(
    "vinyl",
    "Vinyl Records",
    "Specialized template for vinyl record collections",
    "🎵",
    [
        FieldSpec("Artist", FieldType.TEXT, required=True, description="Recording artist or band name"),
        FieldSpec("Album Title", FieldType.TEXT, required=True, description="Album or single title"),
        FieldSpec("Label", FieldType.TEXT, description="Record label (e.g., Blue Note, Sub Pop)"),
        FieldSpec("Catalog Number", FieldType.TEXT, description="Label catalog number"),
        FieldSpec("Release Year", FieldType.NUMBER, description="Year of release"),
        FieldSpec(
            "Format",
            FieldType.SELECT,
            required=True,
            options=("LP", '7" Single', '10" EP', "Box Set", "Double LP", "Triple LP"),
            description="Record format",
        ),
        FieldSpec("Vinyl Color", FieldType.TEXT, description="Vinyl color (e.g., Black, Marbled, Picture Disc)"),
        FieldSpec("Country of Pressing", FieldType.TEXT, description="Country where record was pressed"),
        FieldSpec(
            "Media Condition",
            FieldType.SELECT,
            options=VINYL_GRADES,
            description="Condition of the vinyl record itself",
        ),
        FieldSpec(
            "Sleeve Condition",
            FieldType.SELECT,
            options=VINYL_GRADES,
            description="Condition of the record sleeve/cover",
        ),
        FieldSpec("Genre(s)", FieldType.TAGS, description="Music genres (comma-separated)"),
        FieldSpec("Personal Notes", FieldType.PARAGRAPH, description="Personal notes (e.g., 'First pressing')"),
        FieldSpec("Discogs URL", FieldType.URL, description="Link to Discogs listing for detailed pressing info"),
        FieldSpec("Purchase Price", FieldType.CURRENCY, description="Price paid for this record"),
        FieldSpec("Current Value", FieldType.CURRENCY, description="Current estimated value"),
        FieldSpec("Purchase Date", FieldType.DATE, description="Date purchased"),
        FieldSpec("Purchase Location", FieldType.TEXT, description="Where purchased (store, online, etc.)"),
    ],
)

CUSTOM = _builtin(
    "custom",
    "Custom Template",
    "Create your own custom fields",
    "⚙️",
    [
        FieldSpec("Name", FieldType.TEXT, required=True, description="Item name"),
        FieldSpec("Description", FieldType.PARAGRAPH, description="Item description"),
    ],
)

BUILTIN_TEMPLATES: Mapping[str, Template] = MappingProxyType(
    {template.id: template for template in (GENERAL, VINYL, CUSTOM)}
)


def is_builtin(template_id: str) -> bool:
    return template_id in BUILTIN_TEMPLATES
