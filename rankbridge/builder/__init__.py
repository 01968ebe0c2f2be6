"""Page-builder rendering: stored render trees and themeless templates."""

from rankbridge.builder.base import BuilderRenderer, TemplateResolver
from rankbridge.builder.themeless import ThemelessResolver
from rankbridge.builder.tree import TreeRenderer, decode_tree

__all__ = [
    "BuilderRenderer",
    "TemplateResolver",
    "TreeRenderer",
    "ThemelessResolver",
    "decode_tree",
]
