"""
Core back-office logic: session gate, access policy, numbering, billing and reports.
"""
