"""
Implementation-step templates, one list per affected attribute.

Steps are formatted with the candidate's ``proposed_value`` so every
recommendation ships with concrete, ordered actions.
"""

from __future__ import annotations

from brand_adapt.models.recommendation import RecommendationCandidate
from brand_adapt.taxonomy.recommendation_taxonomy import AffectedAttribute

_STEP_TEMPLATES: dict[AffectedAttribute, tuple[str, ...]] = {
    AffectedAttribute.PRIMARY_COLOR: (
        "Prototype the palette with {value} as the primary colour",
        "Check contrast ratios for text and UI elements against {value}",
        "Update the visual kit and brand guidelines",
        "Roll the new primary colour out across owned channels",
    ),
    AffectedAttribute.LOGO_VARIANT: (
        "Prepare the {value} logo variant in all required formats",
        "Review the variant at small sizes and on dark backgrounds",
        "Set {value} as the default logo in the visual kit",
    ),
    AffectedAttribute.COLOR_USAGE_RULES: (
        "List the personality traits without a colour-usage rule ({value})",
        "Write one colour-usage rule per uncovered trait",
        "Publish the updated rules in the brand guidelines",
    ),
    AffectedAttribute.TONE_FORMALITY: (
        "Rewrite the tone guidelines for a {value} register",
        "Revise the three highest-traffic pieces of copy as a pilot",
        "Update templates and hand the new guidelines to content owners",
    ),
    AffectedAttribute.VOCABULARY_SET: (
        "Collect audience language from reviews, support tickets and social replies",
        "Build the {value} vocabulary set from the collected terms",
        "Replace off-audience jargon in core messaging",
    ),
    AffectedAttribute.CONTENT_FOCUS: (
        "Draft a content brief centred on {value}",
        "Schedule a four-week content run on the new focus",
        "Review market alignment after the run",
    ),
    AffectedAttribute.AUDIENCE_SEGMENT: (
        "Re-validate the audience descriptor ({value})",
        "Fill in missing demographics, locations, interests and pain points",
        "Record the refresh date so freshness is tracked",
    ),
}


def build_implementation_steps(candidate: RecommendationCandidate) -> list[str]:
    """Concrete steps for ``candidate``, formatted with its proposed value."""
    templates = _STEP_TEMPLATES[candidate.affected_attribute]
    return [t.format(value=candidate.proposed_value) for t in templates]
