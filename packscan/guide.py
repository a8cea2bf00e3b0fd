"""Static reference content: packaging materials guide and resin codes."""
from typing import Dict, List, Optional

from .schemas import GuideEntry, ResinCode


MATERIALS_GUIDE: List[GuideEntry] = [
    GuideEntry(
        name="Plastic (PET)",
        recyclable=True,
        biodegradable=False,
        description="Commonly used for beverage bottles. Highly recyclable but takes hundreds of years "
                    "to decompose naturally.",
        tips="Rinse before recycling. Check local recycling guidelines.",
    ),
    GuideEntry(
        name="Cardboard",
        recyclable=True,
        biodegradable=True,
        description="Made from paper pulp. Easily recyclable and biodegradable. One of the most "
                    "eco-friendly packaging options.",
        tips="Remove any plastic coating or tape before recycling.",
    ),
    GuideEntry(
        name="Glass",
        recyclable=True,
        biodegradable=False,
        description="Infinitely recyclable without loss of quality. Heavy and energy-intensive to transport.",
        tips="Can be recycled endlessly. Clean and sort by color when possible.",
    ),
    GuideEntry(
        name="Aluminum",
        recyclable=True,
        biodegradable=False,
        description="Lightweight and highly recyclable. Recycling saves 95% of the energy needed to "
                    "produce new aluminum.",
        tips="Rinse cans and crush to save space. Highly valuable for recycling.",
    ),
    GuideEntry(
        name="Biodegradable Plastics",
        recyclable=False,
        biodegradable=True,
        description="Made from plant-based materials. Breaks down under specific conditions but not "
                    "always in regular composting.",
        tips="Check if your local facility accepts compostable materials.",
    ),
    GuideEntry(
        name="Styrofoam (EPS)",
        recyclable=False,
        biodegradable=False,
        description="Lightweight but problematic. Rarely recyclable and takes over 500 years to decompose.",
        tips="Try to avoid when possible. Some facilities accept for special recycling.",
    ),
]


RESIN_CODES: Dict[int, ResinCode] = {
    rc.code: rc for rc in [
        ResinCode(code=1, abbreviation="PET", name="Polyethylene terephthalate",
                  examples="Beverage bottles, food jars"),
        ResinCode(code=2, abbreviation="HDPE", name="High-density polyethylene",
                  examples="Milk jugs, detergent bottles"),
        ResinCode(code=3, abbreviation="PVC", name="Polyvinyl chloride",
                  examples="Cling film, blister packs"),
        ResinCode(code=4, abbreviation="LDPE", name="Low-density polyethylene",
                  examples="Bread bags, squeeze bottles"),
        ResinCode(code=5, abbreviation="PP", name="Polypropylene",
                  examples="Yogurt cups, bottle caps"),
        ResinCode(code=6, abbreviation="PS", name="Polystyrene",
                  examples="Disposable cups, foam trays"),
        ResinCode(code=7, abbreviation="OTHER", name="Other plastics and multilayer",
                  examples="Multilayer pouches, polycarbonate, PLA"),
    ]
}


def resin_code_info(code: Optional[int]) -> Optional[ResinCode]:
    """Look up a resin identification code; None for null or unknown codes."""
    if code is None:
        return None
    return RESIN_CODES.get(code)
