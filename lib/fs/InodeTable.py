"""
lib/fs/InodeTable.py

Purpose:
The authoritative in-memory map from numeric node ids to Nodes. Owns id allocation and the parent/child relation.

Place in Architecture:
The only shared mutable state of the filesystem core. The LevelResolver fills it, the KubeFS adapter reads it. Nothing else holds Nodes beyond a single call.
Reads share a readers-writer lock; mutations take it exclusively. Callers must never hold the lock across a remote call, so no method here talks to the network.

Interface:

	Get(id): the Node for id, or None.
	ChildByName(parent, name): the named child of parent, or None. Never triggers population.
	Children(parent): a snapshot of parent's children, sorted by name.
	Ancestry(id): the chain of Nodes from the root down to id.
	ReconcileChildren(parent, entries, populatedAt=None, generation=None): diff-and-merge a fresh listing into parent's children, unless it is stale.
	Generation(id): the local mutation counter of id.
	AddChild(parent, name, level): records a single new node.
	RemoveSubtree(id): deletes id and everything beneath it.

TODOs/FIXMEs:
None.
"""

import logging

from ..Errors import NotFound, Invalid, AlreadyExists
from ..Utils import NodeId
from .Level import Level
from .Node import Node
from .RWLock import RWLock

ROOT_ID = 1


class InodeTable(object):
	# *onDrop*, if given, is called with the ids of every batch of removed nodes, after the lock is released.
	def __init__(this, rootName="Root", onDrop=None):
		this.lock = RWLock()
		this.onDrop = onDrop

		this.nodes = {ROOT_ID: Node(ROOT_ID, None, rootName, Level.ROOT)}

		# parent id -> {child name: child id}
		this.children = {ROOT_ID: {}}

	def __len__(this):
		with this.lock.Read():
			return len(this.nodes)

	def __contains__(this, id):
		with this.lock.Read():
			return id in this.nodes

	def Get(this, id):
		with this.lock.Read():
			return this.nodes.get(id)

	def ChildByName(this, parent, name):
		with this.lock.Read():
			childId = this.children.get(parent, {}).get(name)
			if (childId is None):
				return None
			return this.nodes[childId]

	# RETURNS an empty list for unknown parents and for objects.
	def Children(this, parent):
		with this.lock.Read():
			names = this.children.get(parent, {})
			return [this.nodes[names[name]] for name in sorted(names)]

	# RETURNS [root, ..., node].
	def Ancestry(this, id):
		with this.lock.Read():
			if (id not in this.nodes):
				raise NotFound(f"No node with id {id}")

			ret = []
			node = this.nodes[id]
			while (node is not None):
				ret.append(node)
				node = this.nodes.get(node.parent) if node.parent is not None else None
			ret.reverse()
			return ret

	# Make the children of *parent* exactly *entries*, an iterable of (name, level).
	# Children whose name survives keep their id and their own subtree.
	# Children that disappeared are dropped along with their subtree.
	# When *populatedAt* is given, parent.lastPopulated is set in the same critical section.
	# Readers see either the old set of children or the new one, never a mix.
	# A listing is stale, and is not applied, when *generation* (from Generation(), taken before fetching) no longer matches the parent,
	# or when a listing fetched later than *populatedAt* has already been applied.
	# RETURNS True if the listing was applied.
	def ReconcileChildren(this, parent, entries, populatedAt=None, generation=None):
		fresh = {}
		for name, level in entries:
			fresh[name] = level

		dropped = []
		with this.lock.Write():
			parentNode = this.nodes.get(parent)
			if (parentNode is None):
				raise NotFound(f"Cannot reconcile children of missing node {parent}")

			if (generation is not None and generation != parentNode.generation):
				logging.debug(f"Discarding listing of {parentNode.name} ({parent}): changed locally while it was fetched.")
				return False
			if (populatedAt is not None and parentNode.lastPopulated is not None and populatedAt < parentNode.lastPopulated):
				logging.debug(f"Discarding listing of {parentNode.name} ({parent}): a newer one was already applied.")
				return False

			current = this.children.setdefault(parent, {})

			removed = 0
			for name in [name for name, childId in current.items() if fresh.get(name) is not this.nodes[childId].level]:
				dropped.extend(this._DropSubtree(current.pop(name)))
				removed += 1

			added = 0
			for name, level in fresh.items():
				if (name not in current):
					this._Insert(parentNode, name, level)
					added += 1

			if (populatedAt is not None):
				parentNode.lastPopulated = populatedAt

		if (added or removed):
			logging.debug(f"Reconciled {parentNode.name} ({parent}): {added} added, {removed} removed, {len(fresh)} total.")
		this._Dropped(dropped)
		return True

	# RETURNS the mutation counter of *id*, or None if it is missing.
	# AddChild and RemoveSubtree bump the counter of the parent they change.
	def Generation(this, id):
		with this.lock.Read():
			node = this.nodes.get(id)
			return node.generation if node is not None else None

	def AddChild(this, parent, name, level):
		with this.lock.Write():
			parentNode = this.nodes.get(parent)
			if (parentNode is None):
				raise NotFound(f"No node with id {parent}")
			if (name in this.children.setdefault(parent, {})):
				raise AlreadyExists(f"{parentNode.name} already has a child named {name}")
			parentNode.generation += 1
			return this._Insert(parentNode, name, level)

	# RETURNS the ids of every node removed.
	def RemoveSubtree(this, id):
		if (id == ROOT_ID):
			raise Invalid("The root cannot be removed")

		with this.lock.Write():
			node = this.nodes.get(id)
			if (node is None):
				raise NotFound(f"No node with id {id}")
			del this.children[node.parent][node.name]
			this.nodes[node.parent].generation += 1
			dropped = this._DropSubtree(id)

		logging.debug(f"Removed {node.name} ({id}) and {len(dropped) - 1} descendants.")
		this._Dropped(dropped)
		return dropped

	# Called without the lock held.
	def _Dropped(this, ids):
		if (ids and this.onDrop is not None):
			this.onDrop(ids)

	# Caller must hold the write lock.
	def _Insert(this, parentNode, name, level):
		attempt = 0
		id = NodeId(parentNode.id, level, name)
		while (id in this.nodes):
			# Hash collision with an unrelated live node.
			attempt += 1
			logging.warning(f"Node id {id} for {name} under {parentNode.name} is taken; rehashing ({attempt}).")
			id = NodeId(parentNode.id, level, name, attempt)

		node = Node(id, parentNode.id, name, level)
		this.nodes[id] = node
		this.children[parentNode.id][name] = id
		if (level.IsDirectory()):
			this.children[id] = {}
		return node

	# Caller must hold the write lock and must already have unlinked *id* from its parent.
	# RETURNS the ids dropped.
	def _DropSubtree(this, id):
		dropped = []
		stack = [id]
		while (stack):
			current = stack.pop()
			stack.extend(this.children.pop(current, {}).values())
			del this.nodes[current]
			dropped.append(current)
		return dropped
