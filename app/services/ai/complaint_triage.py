"""
Complaint Triage Service
Keyword-based category labelling for complaints submitted without a
classifier label
"""
from typing import Any, Dict, List, Optional
import logging

from app.models.complaint import Department, NORMAL_CATEGORY

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"

CATEGORY_KEYWORDS = {
    Department.SANITATION.value: [
        "garbage", "trash", "waste", "litter", "dump", "dustbin", "sewage smell",
        "overflowing bin", "dead animal", "stray", "unclean", "mosquito",
    ],
    Department.PLUMBING.value: [
        "water leak", "leaking", "leak", "pipe", "burst", "drain", "sewer", "clogged",
        "no water", "water supply", "overflow", "manhole",
    ],
    Department.STRUCTURAL.value: [
        "pothole", "crack", "collapsed", "collapse", "broken road", "bridge", "footpath",
        "wall", "building", "damaged road", "cave in",
    ],
    Department.ELECTRICAL.value: [
        "streetlight", "street light", "power cut", "no power", "electric", "wire",
        "transformer", "sparking", "short circuit", "pole", "outage",
    ],
}


class ComplaintTriageService:
    """Labels complaint descriptions with a municipal category"""

    def __init__(self):
        self.model_version = "keywords-v1"

    async def classify(
        self,
        description: str,
        media_urls: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Suggest a category for a complaint

        Returns:
            Dict with category, confidence, keywords_found
        """
        text_lower = (description or "").lower()

        best_category = None
        best_matches = 0
        total_matches = 0
        for category, keywords in CATEGORY_KEYWORDS.items():
            matches = sum(1 for keyword in keywords if keyword in text_lower)
            total_matches += matches
            if matches > best_matches:
                best_matches = matches
                best_category = category

        if best_category is None:
            logger.info("Triage found no category keywords; complaint left uncategorized")
            return {
                "category": UNCATEGORIZED,
                "confidence": 0.0,
                "keywords_found": 0,
                "model_version": self.model_version,
            }

        confidence = round(best_matches / max(total_matches, 1) * 100, 2)
        return {
            "category": best_category,
            "confidence": confidence,
            "keywords_found": best_matches,
            "model_version": self.model_version,
        }

    @staticmethod
    def is_normal(category: Optional[str]) -> bool:
        return (category or "").strip().lower() == NORMAL_CATEGORY.lower()
