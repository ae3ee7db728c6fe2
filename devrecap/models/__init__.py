from devrecap.models.summary_cache import SummaryCacheEntry

__all__ = ["SummaryCacheEntry"]
