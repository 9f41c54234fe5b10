"""
                Group Order Sessions

Backend for shared food-ordering sessions: an admin opens a session
for a restaurant, participants add menu items through a shareable
link, and the admin finalizes the session to close ordering and
export a summary. Storage is hybrid (in-memory or relational).

Author: Khalil_Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
