"""Terminal renderers for analysis results.

A result is browsed the way the mobile UI does it: pick a material, then a
property category. Scalar-or-list fields are coerced to lists before they
are rendered. Renderers take a Rich Console and print bordered panels.
"""

from enum import Enum
from typing import List, Optional, Union

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .guide import resin_code_info
from .schemas import AnalysisResult, Material, as_string_list


# ── Palette ───────────────────────────────────────────────────────────

PRIMARY = "#fab283"
SUCCESS = "#7fd88f"
WARNING = "#e5c07b"
ERROR = "#e06c75"
INFO = "#61afef"
DIM = "dim"
MUTED = "#808080"


class PropertyCategory(str, Enum):
    CHEMICAL = "chemical"
    FSSAI = "fssai"
    BIS = "bis"
    THICKNESS = "thickness"
    GSM = "gsm"
    APPLICATIONS = "applications"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    PropertyCategory.CHEMICAL: "Chemical Structure",
    PropertyCategory.FSSAI: "FSSAI Limits",
    PropertyCategory.BIS: "BIS Standards",
    PropertyCategory.THICKNESS: "Thickness",
    PropertyCategory.GSM: "GSM",
    PropertyCategory.APPLICATIONS: "Food Applications",
}


# ── Helpers ───────────────────────────────────────────────────────────

def sustainability_style(rating: int) -> str:
    if rating >= 4:
        return SUCCESS
    if rating >= 3:
        return WARNING
    return ERROR


def describe_image(url: Optional[str]) -> str:
    """Short description of a structure image reference for the terminal."""
    if not url:
        return "not available"
    if url.startswith("data:"):
        mime = url[5:].split(";", 1)[0] or "image"
        return f"embedded {mime} ({len(url)} chars)"
    return url


def property_lines(material: Material, category: Union[PropertyCategory, str]) -> List[str]:
    """Bullet lines shown when drilling into one property of a material."""
    category = PropertyCategory(category)

    if category is PropertyCategory.CHEMICAL:
        lines = [f"Formula: {material.chemical_formula or 'N/A'}"]
        lines.append(f"Structure image: {describe_image(material.chemical_structure_image)}")
        return lines
    if category is PropertyCategory.FSSAI:
        return as_string_list(material.fssai_limits)
    if category is PropertyCategory.BIS:
        return as_string_list(material.bis_limits)
    if category is PropertyCategory.THICKNESS:
        return [f"Thickness: {material.thickness or 'N/A'}"]
    if category is PropertyCategory.GSM:
        return [f"GSM: {material.gsm or 'N/A'}"]
    return as_string_list(material.food_applications)


def resin_code_panel(material: Material) -> Optional[Panel]:
    """Resin identification panel, or None when the material has no resin code."""
    info = resin_code_info(material.plastic_resin_code)
    if info is None:
        return None
    body = Text()
    body.append(f" {info.code} ", style=f"bold reverse {INFO}")
    body.append(f"  {info.abbreviation}", style="bold")
    body.append(f"  {info.name}\n", style=DIM)
    body.append(f" e.g. {info.examples}", style=MUTED)
    return Panel(
        body, title=Text(" resin code ", style=DIM), title_align="left",
        border_style=INFO, box=box.ROUNDED, padding=(0, 1),
    )


# ── Card renderers ────────────────────────────────────────────────────

def render_materials_table(console: Console, result: AnalysisResult):
    table = Table(box=box.SIMPLE_HEAVY, show_lines=False, header_style=f"bold {PRIMARY}")
    table.add_column("#", justify="right", style=MUTED)
    table.add_column("Material")
    table.add_column("Formula", style=DIM)
    table.add_column("Structure", style=DIM)
    for index, material in enumerate(result.materials):
        table.add_row(
            str(index),
            material.type,
            material.chemical_formula or "-",
            "yes" if material.chemical_structure_image else "no",
        )
    console.print(Panel(
        table, title=Text(f" materials ({len(result.materials)}) ", style=DIM),
        title_align="left", border_style=MUTED, box=box.ROUNDED, padding=(0, 1),
    ))


def render_property_card(console: Console, material: Material, category: Union[PropertyCategory, str]):
    category = PropertyCategory(category)
    lines = property_lines(material, category)
    body = Text()
    if not lines:
        body.append("No data reported", style=MUTED)
    for line in lines:
        body.append(f" • {line}\n")
    console.print(Panel(
        body, title=Text(f" {material.type} - {category.label} ", style="bold"),
        title_align="left", border_style=SUCCESS, box=box.ROUNDED, padding=(0, 1),
    ))


def render_sustainability_card(console: Console, material: Material):
    """Card for the sustainability-oriented fields, when the model returned them."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style=DIM)
    table.add_column()
    if material.classification:
        table.add_row("Classification", material.classification)
    if material.layer_composition:
        table.add_row("Layers", f"{material.layer_composition} (outside to inside)")
    if material.recyclability:
        table.add_row("Recyclability", material.recyclability)
    if material.biodegradable is not None:
        table.add_row("Biodegradable", "Yes" if material.biodegradable else "No")
    if material.common_uses:
        table.add_row("Common uses", material.common_uses)
    if material.sustainability_rating is not None:
        rating = material.sustainability_rating
        table.add_row("Sustainability", Text(f"{rating}/5", style=f"bold {sustainability_style(rating)}"))
    if material.environmental_impact:
        table.add_row("Environmental impact", material.environmental_impact)

    if table.row_count:
        console.print(Panel(
            table, title=Text(f" {material.type} ", style="bold"), title_align="left",
            border_style=PRIMARY, box=box.ROUNDED, padding=(0, 1),
        ))
    panel = resin_code_panel(material)
    if panel is not None:
        console.print(panel)


def render_analysis(console: Console, result: AnalysisResult,
                    material_index: Optional[int] = None,
                    category: Optional[Union[PropertyCategory, str]] = None):
    """Render a result overview, or drill into one material and property."""
    if not result.materials:
        console.print(Text("No packaging materials identified.", style=WARNING))
    else:
        render_materials_table(console, result)

    if result.overall_analysis:
        console.print(Panel(
            Text(result.overall_analysis), title=Text(" overall analysis ", style=DIM),
            title_align="left", border_style=MUTED, box=box.ROUNDED, padding=(0, 1),
        ))

    if material_index is None:
        for material in result.materials:
            render_sustainability_card(console, material)
        return

    if not 0 <= material_index < len(result.materials):
        raise IndexError(f"Material {material_index} out of range (0-{len(result.materials) - 1})")
    material = result.materials[material_index]

    render_sustainability_card(console, material)
    categories = [PropertyCategory(category)] if category else list(PropertyCategory)
    for item in categories:
        render_property_card(console, material, item)


def render_error(console: Console, message: str):
    body = Text()
    body.append(" ✗ ", style=f"bold {ERROR}")
    body.append(message, style=DIM)
    console.print(Panel(
        body, title=Text(" error ", style=DIM), title_align="left",
        border_style=ERROR, box=box.ROUNDED, padding=(0, 1),
    ))
