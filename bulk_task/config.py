from __future__ import annotations
import os

# ================== Mongo ==================
MONGO_URI       = os.getenv("BULK_MONGO_URI", "mongodb://localhost:27017/")
DB_NAME         = os.getenv("BULK_DB_NAME", "cms")
POSTS_COLL      = os.getenv("BULK_POSTS_COLL", "posts")
TERMS_COLL      = os.getenv("BULK_TERMS_COLL", "terms")
BATCH_LOG_COLL  = os.getenv("BULK_BATCH_LOG_COLL", "bulk_batches")

# ================== Batching ==================
PAGE_SIZE       = int(os.getenv("BULK_PAGE_SIZE", "500"))

# Keep every executed filter in Environment.query_log (grows until free_up_memory)
SAVE_QUERIES    = os.getenv("BULK_SAVE_QUERIES", "0").lower() in ("1", "true", "yes")
