"""
Design Style Presets

The fixed restyling options offered after analysis. Each preset's
prompt_suffix is appended to the base redesign prompt.
"""

from typing import Optional, Tuple

from pydantic import BaseModel


class StyleOption(BaseModel):
    id: str
    name: str
    description: str
    prompt_suffix: str

    model_config = {"frozen": True}


DESIGN_STYLES: Tuple[StyleOption, ...] = (
    StyleOption(
        id="modern-minimalist",
        name="Modern Minimalist",
        description="Clean lines, neutral palette, and clutter-free spaces.",
        prompt_suffix=(
            "in a modern minimalist style, clean lines, neutral colors, decluttered, "
            "sleek furniture, soft natural lighting, architectural simplicity"
        ),
    ),
    StyleOption(
        id="scandinavian-warm",
        name="Scandinavian Warm",
        description="Cozy hygge vibes with light woods and soft textiles.",
        prompt_suffix=(
            "in a Scandinavian style, hygge atmosphere, light wood textures, cozy textiles, "
            "white walls, warm lighting, functional decor, organic shapes"
        ),
    ),
    StyleOption(
        id="luxury-contemporary",
        name="Luxury Contemporary",
        description="High-end finishes, marble, velvet, and gold accents.",
        prompt_suffix=(
            "in a luxury contemporary style, high-end finishes, marble accents, velvet textures, "
            "gold hardware, dramatic lighting, sophisticated, expensive look"
        ),
    ),
    StyleOption(
        id="japandi-calm",
        name="Japandi Calm",
        description="Japanese minimalism meets Scandinavian functionality.",
        prompt_suffix=(
            "in a Japandi style, fusion of Japanese and Scandinavian aesthetics, natural materials, "
            "earth tones, low profile furniture, zen atmosphere, wabi-sabi"
        ),
    ),
    StyleOption(
        id="industrial-chic",
        name="Industrial Chic",
        description="Raw materials, exposed brick, and metal accents.",
        prompt_suffix=(
            "in an industrial chic style, exposed brick, metal accents, leather furniture, "
            "raw materials, urban loft aesthetic, dramatic shadows, statement lighting"
        ),
    ),
    StyleOption(
        id="bohemian-eclectic",
        name="Bohemian Eclectic",
        description="Vibrant patterns, plants, and layered textures.",
        prompt_suffix=(
            "in a bohemian eclectic style, layered patterns, abundant indoor plants, rattan furniture, "
            "warm colors, artistic decor, relaxed atmosphere, textured rugs"
        ),
    ),
)


def get_style(style_id: str) -> Optional[StyleOption]:
    for style in DESIGN_STYLES:
        if style.id == style_id:
            return style
    return None


def preset_prompt(style: StyleOption) -> str:
    return f"Redesign this room {style.prompt_suffix}"
