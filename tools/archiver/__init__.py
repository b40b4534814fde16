"""
Thread Archiver – keep a complete local copy of a single 4chan thread.

Supports:
  • Polling a thread until it is closed or archived
  • Recording every post exactly once (resumable via deduplication)
  • Downloading attachments into a content-addressed media store
  • Deduplicating media by the decoded primary stream (ffmpeg + SHA-1)
  • Stopping on SIGINT/SIGTERM only at safe boundaries
"""

__version__ = "1.0.0"
