"""
Directory package - tenants, organizations and parent/student links.

Every create operation here resolves the new record's billing owner and
reserves capacity against the owner's subscription before writing.
"""
