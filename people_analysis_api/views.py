"""
List and overlay views of an analysis result.

Both views take their colour from ``palette.get_color`` and their highlight
flag from the same highlighted id, which is what ties a card to its box.
"""

from typing import Optional

from people_analysis_api.geometry import box_to_percentages
from people_analysis_api.models import AnalysisResult, OverlayBox, PersonCard, PersonProfile
from people_analysis_api.palette import get_color, with_alpha


def person_tag(person: PersonProfile) -> str:
    return f"#{person.id} {person.display_name}"


def build_person_cards(result: Optional[AnalysisResult], highlighted_id: Optional[int] = None) -> list[PersonCard]:
    """Cards for the results list, in result order."""
    if result is None:
        return []
    return [
        PersonCard(
            id=person.id,
            color=get_color(person.id),
            highlighted=person.id == highlighted_id,
            display_name=person.display_name,
            tag=person_tag(person),
            label=person.label,
            description=person.description,
            estimated_age=person.estimated_age,
            gender=person.gender,
            fashion=person.fashion,
            is_celebrity=person.is_celebrity,
            celebrity_name=person.celebrity_name,
        )
        for person in result.people
    ]


def build_overlay_boxes(result: Optional[AnalysisResult], highlighted_id: Optional[int] = None) -> list[OverlayBox]:
    """Boxes for the image overlay, in result order."""
    if result is None:
        return []
    boxes = []
    for person in result.people:
        color = get_color(person.id)
        highlighted = person.id == highlighted_id
        style = box_to_percentages(person.box_2d)
        boxes.append(
            OverlayBox(
                id=person.id,
                color=color,
                fill=with_alpha(color) if highlighted else "transparent",
                highlighted=highlighted,
                tag=person_tag(person),
                is_celebrity=person.is_celebrity,
                style=style,
                css=style.to_css(),
            )
        )
    return boxes
