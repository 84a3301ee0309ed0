"""Campaign and proposal management -- models, schemas, repository, and proposal workflow.

Campaigns track advertiser deals through probability milestones; proposals
bundle scheduled ad slots for client approval.
"""
