# coastal_store.py
# Store collaborator seen from the analysis core, an in-memory
# implementation of it, and the statistics overview over saved analyses.

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, Iterable, List

import numpy as np

from coastal_errors import InvalidReferenceData
from coastal_models import AnalysisRecord, CoastlineDataset
from coastal_risk import RiskLevel

logger = logging.getLogger(__name__)


class CoastlineStore(ABC):
    """Where coastline datasets come from and analysis records go."""

    @abstractmethod
    def get_coastline(self, dataset_id: str) -> CoastlineDataset:
        """Return the dataset or raise InvalidReferenceData."""

    @abstractmethod
    def save_analysis(self, record: AnalysisRecord) -> str:
        """Persist a record and return its id."""


class InMemoryCoastlineStore(CoastlineStore):
    def __init__(self, coastlines: Iterable[CoastlineDataset] = ()):
        self._lock = threading.Lock()
        self._coastlines: Dict[str, CoastlineDataset] = {c.id: c for c in coastlines}
        self._analyses: Dict[str, AnalysisRecord] = {}

    def add_coastline(self, dataset: CoastlineDataset) -> None:
        with self._lock:
            self._coastlines[dataset.id] = dataset

    def get_coastline(self, dataset_id: str) -> CoastlineDataset:
        with self._lock:
            dataset = self._coastlines.get(dataset_id)
        if dataset is None:
            raise InvalidReferenceData(f"Coastline {dataset_id} not found", dataset_id=dataset_id)
        return dataset

    def save_analysis(self, record: AnalysisRecord) -> str:
        analysis_id = uuid.uuid4().hex
        with self._lock:
            self._analyses[analysis_id] = record
        logger.debug("Saved analysis %s (%s)", analysis_id, record.name)
        return analysis_id

    def get_analysis(self, analysis_id: str) -> AnalysisRecord:
        with self._lock:
            record = self._analyses.get(analysis_id)
        if record is None:
            raise InvalidReferenceData(f"Analysis {analysis_id} not found", analysis_id=analysis_id)
        return record

    def analyses(self) -> List[AnalysisRecord]:
        with self._lock:
            return list(self._analyses.values())


# ---------------------------------------------------------------------
# Statistics overview
# ---------------------------------------------------------------------
def summarize_analyses(records: Iterable[AnalysisRecord]) -> Dict:
    """Totals across analyses plus a per-region breakdown, biggest loss first."""
    records = list(records)
    if not records:
        return {"overview": {}, "by_region": []}

    loss = np.array([r.result.land_loss_area for r in records], dtype=float)
    gain = np.array([r.result.land_gain_area for r in records], dtype=float)
    rate = np.array([r.result.average_annual_change for r in records], dtype=float)
    levels = [r.risk_assessment.level for r in records]

    overview = {
        "total_analyses": len(records),
        "total_land_loss": float(loss.sum()),
        "total_land_gain": float(gain.sum()),
        "average_annual_change": float(rate.mean()),
        "critical_areas": sum(1 for lv in levels if lv is RiskLevel.CRITICAL),
        "high_risk_areas": sum(1 for lv in levels if lv is RiskLevel.HIGH),
    }

    grouped = defaultdict(list)
    for r in records:
        grouped[r.location.get("region")].append(r)

    by_region = []
    for region, group in grouped.items():
        by_region.append({
            "region": region,
            "analysis_count": len(group),
            "total_loss": float(np.sum([r.result.land_loss_area for r in group])),
            "average_percentage_change": float(np.mean([r.result.percentage_change for r in group])),
        })
    by_region.sort(key=lambda row: row["total_loss"], reverse=True)

    return {"overview": overview, "by_region": by_region}
