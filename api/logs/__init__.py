"""
Log ingestion feature: POST /log and POST /query.
"""
