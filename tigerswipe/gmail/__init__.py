"""Gmail API adapter (REST client and payload parser)"""
