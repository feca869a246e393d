"""
Analysis record storage.

AnalysisStorage is the interface the orchestrator depends on; the
in-memory implementation backs tests and the CLI.
"""
import logging
import uuid
from typing import Dict, List, Optional, Protocol

from jobsift.core.extraction_heuristics import normalize_url
from jobsift.models import AnalysisRecord, InteractionStatus, MotivationLetter, utcnow

logger = logging.getLogger(__name__)


class AnalysisStorage(Protocol):
    def save(self, record: AnalysisRecord) -> AnalysisRecord: ...

    def get(self, record_id: str) -> Optional[AnalysisRecord]: ...

    def list(self) -> List[AnalysisRecord]: ...

    def update(self, record_id: str, status: Optional[InteractionStatus] = None,
               notes: Optional[str] = None) -> Optional[AnalysisRecord]: ...

    def delete(self, record_id: str) -> bool: ...

    def exists_by_url(self, url: str) -> bool: ...

    def search_by_company(self, company: str) -> List[AnalysisRecord]: ...

    def get_by_status(self, status: InteractionStatus) -> List[AnalysisRecord]: ...

    def save_letter(self, record_id: str, letter: MotivationLetter) -> Optional[AnalysisRecord]: ...


class InMemoryAnalysisStorage:
    """Dictionary-backed storage; records keep insertion order."""

    def __init__(self):
        self._records: Dict[str, AnalysisRecord] = {}

    def save(self, record: AnalysisRecord) -> AnalysisRecord:
        record_id = record.id or uuid.uuid4().hex
        now = utcnow()
        saved = record.model_copy(update={'id': record_id, 'updated_at': now})
        self._records[record_id] = saved
        logger.debug(f"[storage] Saved analysis {record_id} for {record.job.source_url or record.job.title}")
        return saved

    def get(self, record_id: str) -> Optional[AnalysisRecord]:
        return self._records.get(record_id)

    def list(self) -> List[AnalysisRecord]:
        return list(self._records.values())

    def update(self, record_id: str, status: Optional[InteractionStatus] = None,
               notes: Optional[str] = None) -> Optional[AnalysisRecord]:
        """Change user state only; analysis content is immutable."""
        record = self._records.get(record_id)
        if record is None:
            return None
        changes = {'updated_at': utcnow()}
        if status is not None:
            changes['status'] = status
        if notes is not None:
            changes['notes'] = notes
        updated = record.model_copy(update=changes)
        self._records[record_id] = updated
        return updated

    def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    def exists_by_url(self, url: str) -> bool:
        target = normalize_url(url)
        return any(
            record.job.source_url and normalize_url(record.job.source_url) == target
            for record in self._records.values()
        )

    def search_by_company(self, company: str) -> List[AnalysisRecord]:
        needle = company.strip().lower()
        if not needle:
            return []
        return [record for record in self._records.values() if needle in record.job.company.lower()]

    def get_by_status(self, status: InteractionStatus) -> List[AnalysisRecord]:
        return [record for record in self._records.values() if record.status == status]

    def save_letter(self, record_id: str, letter: MotivationLetter) -> Optional[AnalysisRecord]:
        """Store a drafted letter under its language, replacing an earlier draft."""
        record = self._records.get(record_id)
        if record is None:
            return None
        letters = {**record.letters, letter.language: letter}
        updated = record.model_copy(update={'letters': letters, 'updated_at': utcnow()})
        self._records[record_id] = updated
        logger.debug(f"[storage] Saved {letter.language} letter for analysis {record_id}")
        return updated
