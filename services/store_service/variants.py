"""Variant grouping and selection for the product page.

Variants of a product are partitioned by color. Only addable variants
(active, stock above zero) appear in a group; the raw list is still used as
the last-resort fallback when resolving the "current" variant.
"""

import math
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from services.store_service.schemas import VariantSnapshot

FALLBACK_COLOR = "Autre"
PLACEHOLDER_IMAGE = "/placeholder.svg"


@dataclass
class ColorGroup:
    color: str
    hex: Optional[str] = None
    variants: list[VariantSnapshot] = field(default_factory=list)

    @property
    def lengths(self) -> list[float]:
        return [variant.length for variant in self.variants]


@dataclass(frozen=True)
class CarouselItem:
    color: Optional[str]
    url: str


def effective_stock(variant: VariantSnapshot) -> int:
    """Stock as the cart sees it: null or negative counts as 0."""
    return max(0, math.floor(variant.stock_count or 0))


def is_addable(variant: VariantSnapshot) -> bool:
    return variant.is_active is not False and effective_stock(variant) > 0


def color_key(variant: VariantSnapshot) -> str:
    return variant.color or FALLBACK_COLOR


def group_variants_by_color(
    variants: Sequence[VariantSnapshot],
) -> dict[str, ColorGroup]:
    groups: dict[str, ColorGroup] = {}
    for variant in variants:
        if not is_addable(variant):
            continue
        key = color_key(variant)
        group = groups.get(key)
        if group is None:
            group = groups[key] = ColorGroup(color=key, hex=variant.color_hex)
        elif group.hex is None and variant.color_hex:
            group.hex = variant.color_hex
        group.variants.append(variant)

    for group in groups.values():
        group.variants.sort(key=lambda v: v.length)
    return groups


def default_color_key(
    variants: Sequence[VariantSnapshot], groups: dict[str, ColorGroup]
) -> Optional[str]:
    for variant in variants:
        if variant.is_default and is_addable(variant):
            key = color_key(variant)
            if key in groups:
                return key
    return next(iter(groups), None)


def available_lengths(
    groups: dict[str, ColorGroup], color: Optional[str]
) -> list[float]:
    group = groups.get(color) if color else None
    return group.lengths if group else []


def resolve_current_variant(
    variants: Sequence[VariantSnapshot],
    groups: dict[str, ColorGroup],
    selected_color: Optional[str],
    selected_length: Optional[float],
) -> Optional[VariantSnapshot]:
    """Exact (color, length) match, else the color's first variant, else the first raw variant.

    The raw fallback may be inactive or out of stock; it is for display only.
    """
    group = groups.get(selected_color) if selected_color else None
    if group and group.variants:
        if selected_length is not None:
            for variant in group.variants:
                if variant.length == selected_length:
                    return variant
        return group.variants[0]
    return variants[0] if variants else None


def build_carousel(groups: dict[str, ColorGroup]) -> list[CarouselItem]:
    """Media of each color's first variant, in group order."""
    items: list[CarouselItem] = []
    for key, group in groups.items():
        first = group.variants[0]
        urls = list(first.medias) or ([first.image_url] if first.image_url else [])
        if not urls:
            urls = [PLACEHOLDER_IMAGE]
        items.extend(CarouselItem(color=key, url=url) for url in urls)
    if not items:
        items.append(CarouselItem(color=None, url=PLACEHOLDER_IMAGE))
    return items


def carousel_index_for_color(carousel: Sequence[CarouselItem], color: str) -> int:
    for index, item in enumerate(carousel):
        if item.color == color:
            return index
    return 0


@dataclass(frozen=True)
class VariantSelection:
    """Immutable product-page selection; each transition returns a new value."""

    variants: tuple[VariantSnapshot, ...]
    groups: dict[str, ColorGroup] = field(repr=False, compare=False)
    carousel: tuple[CarouselItem, ...]
    color: Optional[str] = None
    length: Optional[float] = None
    image_index: int = 0

    @classmethod
    def initial(cls, variants: Sequence[VariantSnapshot]) -> "VariantSelection":
        groups = group_variants_by_color(variants)
        carousel = tuple(build_carousel(groups))
        color = default_color_key(variants, groups)
        lengths = available_lengths(groups, color)
        return cls(
            variants=tuple(variants),
            groups=groups,
            carousel=carousel,
            color=color,
            length=lengths[0] if lengths else None,
            image_index=carousel_index_for_color(carousel, color) if color else 0,
        )

    @property
    def lengths(self) -> list[float]:
        return available_lengths(self.groups, self.color)

    @property
    def current_variant(self) -> Optional[VariantSnapshot]:
        return resolve_current_variant(
            self.variants, self.groups, self.color, self.length
        )

    @property
    def can_add_to_cart(self) -> bool:
        variant = self.current_variant
        return variant is not None and is_addable(variant)

    def select_color(self, color: str) -> "VariantSelection":
        if color not in self.groups:
            return self
        lengths = available_lengths(self.groups, color)
        return replace(
            self,
            color=color,
            length=lengths[0] if lengths else None,
            image_index=carousel_index_for_color(self.carousel, color),
        )

    def select_length(self, length: float) -> "VariantSelection":
        return replace(self, length=length)

    def select_image(self, index: int) -> "VariantSelection":
        if not self.carousel:
            return self
        return replace(self, image_index=index % len(self.carousel))
