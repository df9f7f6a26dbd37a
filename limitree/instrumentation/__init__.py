from limitree.instrumentation.usage_recorder import UsageRecord, UsageRecorder

__all__ = ["UsageRecord", "UsageRecorder"]
