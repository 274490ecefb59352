# File: livescribe/core/database/base.py

from sqlalchemy.orm import declarative_base

# The shared registry. All feature models (Transcript, Word, Recording) inherit from this.
Base = declarative_base()
