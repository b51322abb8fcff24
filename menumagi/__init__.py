"""
                Menu Magi

QR table ordering backend for restaurants: customers scan a table
QR code, browse the menu and order; owners manage the menu and move
orders through the kitchen workflow.

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
