"""
lib/fs/Level.py

Purpose:
Defines the four tiers of the KubeFS hierarchy.

Place in Architecture:
Every Node carries a Level. The LevelResolver switches on it to decide how a directory gets its children, and the adapter uses it to tell directories from files.

Interface:

	Enum members: ROOT, NAMESPACE, KIND, and OBJECT.
	Child(): the level of this level's children, or None for OBJECT.
	IsDirectory(): False only for OBJECT.

TODOs/FIXMEs:
None.
"""

from enum import Enum

# / -> /<namespace> -> /<namespace>/<kind> -> /<namespace>/<kind>/<object>
class Level(Enum):
	ROOT = 0
	NAMESPACE = 1
	KIND = 2
	OBJECT = 3

	def Child(this):
		if (this is Level.OBJECT):
			return None
		return Level(this.value + 1)

	def IsDirectory(this):
		return this is not Level.OBJECT

	def __str__(this):
		return this.name
