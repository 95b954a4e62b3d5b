"""
Decision system: network classification, gas pricing, transfer risk,
technical indicators, strategy scoring and the learning feedback loop.

Every calculator here is a pure function of its inputs plus the configuration
it was built with. The learning tracker and the strategy scheduler are the only
shared mutable state and serialize their own updates.
"""
