"""
app/schemas/pages.py
Documents versionnés stockés dans PageConfig.template_config / design_config.
"""
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any, Literal

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"

class PageDocument(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True

# ─── Template (contenu) ──────────────────────────────────────────────────────

class Feature(PageDocument):
    title: str = Field(max_length=100)
    description: str = Field(max_length=300)
    icon: Optional[str] = Field(default=None, max_length=50)

class Testimonial(PageDocument):
    name: str = Field(max_length=100)
    company: Optional[str] = Field(default=None, max_length=100)
    text: str = Field(max_length=500)
    avatar: Optional[str] = Field(default=None, max_length=500)

class SocialProof(PageDocument):
    testimonials: List[Testimonial] = Field(default_factory=list, max_length=5)
    metrics: Dict[str, str] = Field(default_factory=dict)   # ex: {"users": "500+"}

class FaqItem(PageDocument):
    question: str = Field(max_length=200)
    answer: str = Field(max_length=1000)

class AdditionalSections(PageDocument):
    about: Optional[str] = Field(default=None, max_length=1000)
    pricing: Optional[Dict[str, Any]] = None
    faq: List[FaqItem] = Field(default_factory=list, max_length=10)

class TemplateConfig(PageDocument):
    version: Literal[1] = 1
    headline: str = Field(min_length=1, max_length=200)
    subheadline: str = Field(default="", max_length=500)
    cta_text: str = Field(min_length=1, max_length=50)
    features: List[Feature] = Field(default_factory=list, max_length=10)
    social_proof: Optional[SocialProof] = None
    additional_sections: Optional[AdditionalSections] = None

# ─── Design ──────────────────────────────────────────────────────────────────

class Logo(PageDocument):
    url: str = Field(max_length=500)
    alt: str = Field(max_length=100)
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)

class Hero(PageDocument):
    background_image: Optional[str] = Field(default=None, max_length=500)
    background_video: Optional[str] = Field(default=None, max_length=500)
    style: Literal["centered", "split", "fullscreen"] = "centered"

class DesignConfig(PageDocument):
    version: Literal[1] = 1
    primary_color: str = Field(default="#3B82F6", pattern=HEX_COLOR)
    secondary_color: Optional[str] = Field(default="#1F2937", pattern=HEX_COLOR)
    background_color: str = Field(default="#FFFFFF", pattern=HEX_COLOR)
    text_color: str = Field(default="#111827", pattern=HEX_COLOR)
    font_family: str = Field(default="Inter", max_length=50)
    theme: Literal["modern", "minimal", "bold", "eco", "tech", "creative"] = "modern"
    custom_css: Optional[str] = Field(default=None, max_length=5000)
    logo: Optional[Logo] = None
    hero: Optional[Hero] = None


def default_template_config(title: str, description: Optional[str] = None) -> TemplateConfig:
    return TemplateConfig(
        headline=title[:200],
        subheadline=(description or f"Validate your {title} idea with real users")[:500],
        cta_text="Join Waitlist",
        features=[
            Feature(title="Feature 1", description="Describe your first key feature"),
            Feature(title="Feature 2", description="Describe your second key feature"),
            Feature(title="Feature 3", description="Describe your third key feature"),
        ],
    )


def default_design_config() -> DesignConfig:
    return DesignConfig()
