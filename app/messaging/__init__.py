"""
Messaging: conversations, groups, messages, daily quota and the send pipeline.
"""
