"""
lib/fs/Node.py

Purpose:
The record the InodeTable keeps for each entry of the hierarchy.

Place in Architecture:
Nodes are created and destroyed only by the InodeTable. Other components receive them from table lookups and must not keep them past the call that fetched them.

Interface:

	__init__(id, parent, name, level): Creates an unpopulated node.
	IsDirectory(): True for every level but OBJECT.
	IsPopulated(): True once the node's children have been fetched at least once.

TODOs/FIXMEs:
None.
"""


class Node(object):
	def __init__(this, id, parent, name, level):
		this.id = id
		this.parent = parent # numeric id of the parent. None for the root.
		this.name = name
		this.level = level

		# When the children of *this were last fetched.
		# Only written by the InodeTable, on behalf of the LevelResolver.
		this.lastPopulated = None

		# Bumped whenever a child is added or removed outside of a listing.
		this.generation = 0

	def IsDirectory(this):
		return this.level.IsDirectory()

	def IsPopulated(this):
		return this.lastPopulated is not None

	def __repr__(this):
		return f"Node({this.id}, parent={this.parent}, name={this.name!r}, level={this.level})"
