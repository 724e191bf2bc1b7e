"""
Recommendations Module
======================

Ranking strategies over the check-in corpus:

1. PreferenceLearner - per-user profile learned from recent check-ins
2. ScoringService - weighted multi-factor spot scoring
3. CollaborativeFilter - user-overlap recommendations around a seed spot
4. TrendAnalyzer - week-over-week trending spots
5. Place events - implicit feedback accumulated into category affinity
"""
