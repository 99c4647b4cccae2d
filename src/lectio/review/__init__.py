from .session import MERGE_SEPARATOR, ReviewSession, renumber, to_review_nodes

__all__ = ["MERGE_SEPARATOR", "ReviewSession", "renumber", "to_review_nodes"]
