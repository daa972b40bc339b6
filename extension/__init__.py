"""
Client side of the mail tracker: runs against the host mail page.
"""
