"""
lib/fs/LevelResolver.py

Purpose:
Lazily populates directories. Given a directory Node, decides what its children should be and fetches them, unless they were fetched recently enough.

Place in Architecture:
Sits between the KubeFS adapter and the InodeTable, and is the only component that talks to the remote source in order to list things.
All remote calls happen before the table lock is taken: results are fetched into a local list first, then handed to InodeTable.ReconcileChildren.

Interface:

	__init__(inodes, source, kinds, cache_ttl=1, clock=time.time): Wire up the table, the remote source and the configured kind names.
	IsFresh(node): whether node's children are still within the cache ttl.
	EnsurePopulated(node): fetch and reconcile node's children if they are stale.
	FetchChildren(node): the raw (name, level) listing for node, straight from the source.
	ObjectPath(node): (namespace, kind, name) for an OBJECT node.

TODOs/FIXMEs:
None.
"""

import time
import logging

from ..Errors import KubeFSError, Unavailable, Invalid
from .Level import Level

LISTING_ATTEMPTS = 3


class LevelResolver(object):
	def __init__(this, inodes, source, kinds, cache_ttl=1, clock=time.time):
		this.inodes = inodes
		this.source = source
		this.kinds = list(kinds)
		this.cache_ttl = cache_ttl
		this.clock = clock

	def IsFresh(this, node, now=None):
		if (not node.IsPopulated()):
			return False
		if (now is None):
			now = this.clock()
		return now - node.lastPopulated < this.cache_ttl

	# Bring the children of *node* up to date.
	# A failed fetch raises Unavailable and leaves whatever children node already had exactly as they were.
	def EnsurePopulated(this, node):
		if (not node.IsDirectory()):
			return

		if (this.IsFresh(node)):
			return

		# A listing that raced with a local create or remove is discarded and fetched again.
		for attempt in range(LISTING_ATTEMPTS):
			# Take the timestamp and generation before fetching, so the listing is never considered fresher than it is.
			fetchedAt = this.clock()
			generation = this.inodes.Generation(node.id)
			entries = this.FetchChildren(node)
			if (this.inodes.ReconcileChildren(node.id, entries, populatedAt=fetchedAt, generation=generation)):
				return
			if (this.IsFresh(node)):
				return

		raise Unavailable(f"{node.name} kept changing while it was listed")

	# RETURNS a list of (name, level) for the children *node* should have.
	def FetchChildren(this, node):
		childLevel = node.level.Child()

		if (node.level is Level.NAMESPACE):
			# The kinds are configuration; every namespace has all of them.
			return [(kind, childLevel) for kind in this.kinds]

		try:
			if (node.level is Level.ROOT):
				names = this.source.list_namespaces()
			elif (node.level is Level.KIND):
				namespace = this.inodes.Get(node.parent)
				if (namespace is None):
					raise Unavailable(f"Namespace of {node.name} disappeared while listing")
				names = this.source.list_objects(namespace.name, node.name)
			else:
				return []

		except KubeFSError as e:
			logging.info(f"Could not list {node.name} ({node.level}): {e}")
			raise
		except (IOError, OSError, ValueError) as e:
			logging.info(f"Could not list {node.name} ({node.level}): {e}")
			raise Unavailable(f"Listing {node.name} failed: {e}") from e

		return [(name, childLevel) for name in names]

	# RETURNS (namespace, kind, name) for an OBJECT node.
	def ObjectPath(this, node):
		if (node.level is not Level.OBJECT):
			raise Invalid(f"{node.name} is not an object")

		_, namespace, kind, obj = this.inodes.Ancestry(node.id)
		return namespace.name, kind.name, obj.name
