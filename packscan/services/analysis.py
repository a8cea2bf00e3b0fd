"""
Packaging analysis pipeline.

One analysis call to the gateway identifies the materials; a structure
diagram is then requested for every material concurrently. The first call
is fatal on failure, the per-material calls are not: a failed diagram only
leaves that material's ``chemicalStructureImage`` empty.
"""

import asyncio
import json
import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from ..schemas import AnalysisResult, Material
from .ai_gateway import AIGatewayClient
from .prompts import ANALYSIS_PROMPT, structure_prompt


logger = logging.getLogger(__name__)


class AnalysisError(Exception):
    """Base exception for analysis pipeline errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingImageError(AnalysisError):
    """Raised when a request carries no image."""

    status_code = 400

    def __init__(self, message: str = "Missing image data"):
        super().__init__(message)


class AnalysisParseError(AnalysisError):
    """Raised when the model output is not the JSON shape we asked for."""


class PackagingAnalyzer:
    """Runs the analysis + structure diagram pipeline for one image."""

    def __init__(self, gateway: AIGatewayClient, generate_structure_images: bool = True):
        self.gateway = gateway
        self.generate_structure_images = generate_structure_images

    async def analyze(self, image: Optional[str], generate_structure_images: Optional[bool] = None) -> AnalysisResult:
        """
        Analyze a packaging image.

        Args:
            image: Image as a data URL or base64 string
            generate_structure_images: Overrides the analyzer default when not None

        Returns:
            The parsed analysis, one entry per detected material
        """
        if not image or not image.strip():
            raise MissingImageError()

        self.gateway.ensure_configured()

        content = await self.gateway.analyze_image(ANALYSIS_PROMPT, image)
        result = self.parse_analysis(content)

        if generate_structure_images is None:
            generate_structure_images = self.generate_structure_images

        if generate_structure_images and result.materials:
            images = await self._gather_structure_images(result.materials)
        else:
            images = [None] * len(result.materials)

        for material, image_url in zip(result.materials, images):
            material.chemical_structure_image = image_url

        generated = sum(1 for url in images if url)
        logger.info(f"Analysis complete. Generated {generated}/{len(images)} structure images")
        return result

    @staticmethod
    def parse_analysis(content: str) -> AnalysisResult:
        """Parse the model's message content into an AnalysisResult."""
        try:
            data: Any = json.loads(content)
        except (json.JSONDecodeError, TypeError) as e:
            logger.error(f"Model returned invalid JSON: {e}")
            raise AnalysisParseError("AI returned an invalid analysis (malformed JSON)")

        if not isinstance(data, dict) or not isinstance(data.get("materials"), list):
            raise AnalysisParseError("AI returned an invalid analysis (no materials list)")

        materials = []
        for index, item in enumerate(data["materials"]):
            if not isinstance(item, dict):
                raise AnalysisParseError(f"AI returned an invalid analysis (material {index} is not an object)")
            # Structure images are always generated here, never taken from the model
            item = {k: v for k, v in item.items() if k not in ("chemicalStructureImage", "chemical_structure_image")}
            try:
                materials.append(Material.model_validate(item))
            except ValidationError as e:
                logger.error(f"Model returned material {index} that does not validate: {e}")
                error = e.errors()[0]
                field = ".".join(str(part) for part in error.get("loc", ())) or "material"
                raise AnalysisParseError(
                    f"AI returned an invalid analysis (material {index}: {field}: {error.get('msg', 'invalid')})"
                )

        overall = data.get("overallAnalysis")
        return AnalysisResult(
            materials=materials,
            overall_analysis=str(overall) if overall else None
        )

    async def _gather_structure_images(self, materials: List[Material]) -> List[Optional[str]]:
        return await asyncio.gather(*(self._structure_image(m) for m in materials))

    async def _structure_image(self, material: Material) -> Optional[str]:
        if not material.chemical_formula:
            logger.warning(f"No chemical formula for {material.type}, skipping structure image")
            return None

        logger.info(f"Generating structure for: {material.type} ({material.chemical_formula})")
        try:
            url = await self.gateway.generate_image(structure_prompt(material.chemical_formula))
        except Exception as e:
            logger.error(f"Error generating structure image for {material.type}: {e}")
            return None

        if url:
            logger.info(f"Successfully generated image for {material.type}")
        else:
            logger.warning(f"No image URL returned for {material.type}")
        return url
