from sqlalchemy import Column, Integer, String, Text, DateTime, func, UniqueConstraint

from .database import Base


# ---------------------------
# SCRIPT CACHE
# ---------------------------
class ScriptCache(Base):
    """One generated narration per distinct content hash. Rows are never updated."""

    __tablename__ = "script_cache"
    __table_args__ = (UniqueConstraint("content_hash", name="uq_script_cache_content_hash"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    content_hash = Column(String(64), nullable=False)  # sha256 hex
    pdf_id = Column(String, nullable=False)
    page_number = Column(Integer, nullable=False)
    total_pages = Column(Integer, nullable=False)
    script = Column(Text, nullable=False)
    audio_url = Column(String, nullable=True)  # null when speech synthesis failed
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<ScriptCache {self.pdf_id} p{self.page_number}/{self.total_pages} {self.content_hash[:12]}>"
