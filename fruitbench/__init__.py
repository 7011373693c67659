"""
Fruitbench: rate fruits on flavor, nourishment, reliability and practicality,
then rank them into S/A/B/C/F tiers.
"""
