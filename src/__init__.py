"""
Personal Phone Book - Source Package

A small contact book that imports and exports vCard (.vcf) files and keeps
contact photos in an external image store.

DESIGN PRINCIPLES:
1. Import never fails on a single bad card
2. Exported files open in any phone or address book
3. Photos live outside the contact table
4. Every import, export and edit is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Personal Phone Book Team"
