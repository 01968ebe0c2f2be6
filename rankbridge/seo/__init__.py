"""SEO analyzer integration: recalculation filter and editor content client."""

from rankbridge.seo.editor import EditorContentClient
from rankbridge.seo.recalculate import filter_recalculate_score_data, merge_content

__all__ = ["EditorContentClient", "filter_recalculate_score_data", "merge_content"]
