"""Talent approval workflow -- host sign-off on campaigns airing on their shows.

Requests are created when a campaign reaches the talent approval milestone,
answered by the talent, and gate the campaign's commit milestone.
"""
