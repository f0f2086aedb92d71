"""Helpers for PowerShell and GPO link report parsing.

Submodules:
    powershell - PowerShell child-process session and module host
    gpo_report - Get-GPOReport XML and gPLink parsing
"""
