"""Built-in alias templates for common citation styles."""

from dataclasses import dataclass

from ..core.model import NumberExtractor


@dataclass(frozen=True)
class CitationPreset:
    id: str
    label: str
    description: str
    default_prefix: str
    default_pattern: str
    number_extractor: NumberExtractor
    display_format: str


CITATION_PRESETS: dict[str, CitationPreset] = {
    p.id: p
    for p in (
        CitationPreset(
            id="catechism",
            label="Catechism",
            description="CCC §17, CCC 17-20",
            default_prefix="CCC",
            default_pattern=r"(CCC)\s*§?§?\s*(\d+)(?:\s*[-–]\s*(\d+))?",
            number_extractor="paragraph",
            display_format="CCC §{number}",
        ),
        CitationPreset(
            id="summa",
            label="Summa Theologiae",
            description="ST I.2.3, ST II-II.4.1",
            default_prefix="ST",
            default_pattern=r"(ST)\s+(I{1,3}(?:-I{1,3})?)\.(\d+)\.(\d+)",
            number_extractor="section",
            display_format="ST {number}",
        ),
        CitationPreset(
            id="confessions",
            label="Confessions",
            description="Augustine Conf. I.1",
            default_prefix="Conf.",
            default_pattern=r"(Conf\.|Confessions)\s+([IVX]+)\.(\d+)",
            number_extractor="chapter:verse",
            display_format="Conf. {number}",
        ),
        CitationPreset(
            id="generic",
            label="Generic Numbered",
            description="Prefix followed by number",
            default_prefix="",
            default_pattern="",
            number_extractor="paragraph",
            display_format="{prefix} {number}",
        ),
    )
}


def get_preset(preset_id: str) -> CitationPreset | None:
    return CITATION_PRESETS.get(preset_id)
