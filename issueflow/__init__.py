"""
issueflow

Command-driven issue tracking engine with:
- Gated ticket lifecycle (role, expertise, seniority, milestone)
- Milestone blocking and daily priority escalation
- Visitor-based scoring reports (risk, impact, efficiency, performance)
- Simulated calendar driven by command timestamps
"""

__version__ = "0.1.0"
