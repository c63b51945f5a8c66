"""
Forum app: posts and the persisted side of the chat room.
"""
