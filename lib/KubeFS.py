"""
lib/KubeFS.py

Purpose:
Implements the KubeFS adapter: the filesystem operations (lookup, getattr, readdir, read, write, create, mkdir, rmdir, unlink) expressed over the InodeTable, the LevelResolver and the remote source.

Place in Architecture:
The central coordinator. The FUSE layer calls exactly one method here per kernel request. Everything cluster-facing goes through *this.source*, which is injected, so the same adapter runs against the real API or an in-memory fake.
State lives in the InodeTable (directory structure), the SidecarRegistry (editor artifacts) and the open edit sessions. No lock is ever held across a remote call.

Interface:

	__init__(source, kinds, cache_ttl, size_estimate, sidecar_patterns, clock): Builds the table, resolver and registry.
	Lookup(parent, name), GetAttributes(id), ListDirectory(id)
	OpenObject(id, flags), ReadObject(id, offset, length, fh), WriteObject(id, fh, offset, data)
	TruncateObject(id, size, fh), FlushObject(id, fh), ReleaseObject(id, fh)
	Create(parent, name, flags), MakeDirectory(parent, name), RemoveDirectory(parent, name), Unlink(parent, name)
	CreateNamespace(name), RemoveNamespace(name)

TODOs/FIXMEs:
None.
"""

import os
import time
import errno
import logging
import itertools
import threading

from .Errors import NotFound, Unavailable, Invalid, AlreadyExists
from .fs.Level import Level
from .fs.InodeTable import InodeTable, ROOT_ID
from .fs.LevelResolver import LevelResolver
from .fs.EditSession import EditSession
from .fs.Sidecar import SidecarRegistry, SidecarHandle
from .kube.Kinds import DEFAULT_KINDS

DIRECTORY_MODE = 0o755
FILE_MODE = 0o644


# KubeFS presents namespaces, kinds and objects of a cluster as directories and files.
# All methods are safe to call from many threads at once.
class KubeFS(object):
	def __init__(this, source, kinds=None, cache_ttl=1, size_estimate=4096, sidecar_patterns=None, clock=time.time):
		this.source = source
		this.kinds = list(kinds if kinds is not None else DEFAULT_KINDS)
		this.size_estimate = size_estimate
		this.clock = clock
		this.mountTime = clock()

		this.sidecars = SidecarRegistry(sidecar_patterns)
		this.inodes = InodeTable(onDrop=this._Dropped)
		this.resolver = LevelResolver(this.inodes, source, this.kinds, cache_ttl=cache_ttl, clock=clock)

		# Open handles: fh -> EditSession or SidecarHandle
		this.sessions = {}
		this.sessionLock = threading.Lock()
		this.handles = itertools.count(1)

		# Last observed document size per object id.
		this.sizeHints = {}

	# RETURNS the Node for *id*, or raises NotFound.
	def GetNode(this, id):
		node = this.inodes.Get(id)
		if (node is None):
			raise NotFound(f"No node with id {id}")
		return node

	def GetDirectory(this, id):
		node = this.GetNode(id)
		if (not node.IsDirectory()):
			raise Invalid(f"{node.name} is not a directory", errno.ENOTDIR)
		return node

	def GetObject(this, id):
		node = this.GetNode(id)
		if (node.level is not Level.OBJECT):
			raise Invalid(f"{node.name} is a directory", errno.EISDIR)
		return node

	# Whatever hung off nodes that left the table goes with them.
	def _Dropped(this, ids):
		for id in ids:
			this.sizeHints.pop(id, None)
		count = this.sidecars.RemoveUnder(ids)
		if (count):
			logging.debug(f"Dropped {count} sidecars along with {len(ids)} nodes.")


	# -- Handleless ops

	# RETURNS the Node (or SidecarFile) named *name* in directory *parent*.
	def Lookup(this, parent, name):
		sidecar = this.sidecars.Lookup(parent, name)
		if (sidecar is not None):
			return sidecar

		parentNode = this.GetDirectory(parent)
		node = this.inodes.ChildByName(parent, name)
		if (node is None):
			this.resolver.EnsurePopulated(parentNode)
			node = this.inodes.ChildByName(parent, name)
		if (node is None):
			raise NotFound(f"{parentNode.name} has no entry {name}")
		return node

	# RETURNS a dict of attributes: id, type ('dir' or 'file'), mode, nlink, size, mtime, ctime, atime.
	def GetAttributes(this, id):
		if (this.sidecars.IsSidecarId(id)):
			sidecar = this.sidecars.Get(id)
			if (sidecar is None):
				raise NotFound(f"No sidecar with id {id}")
			with sidecar.lock:
				size = len(sidecar.data)
			return this._Attributes(id, 'file', FILE_MODE, 1, size)

		node = this.GetNode(id)
		if (node.IsDirectory()):
			return this._Attributes(id, 'dir', DIRECTORY_MODE, 2, 0)

		# Documents are not fetched just to stat them.
		return this._Attributes(id, 'file', FILE_MODE, 1, this.sizeHints.get(id, this.size_estimate))

	def _Attributes(this, id, type, mode, nlink, size):
		return dict(
			id=id,
			type=type,
			mode=mode,
			nlink=nlink,
			size=size,
			mtime=this.mountTime,
			ctime=this.mountTime,
			atime=this.mountTime,
		)

	# RETURNS a list of (child id, type, name) for the live children of *id*.
	# If the remote listing fails but *id* was listed before, the cached children are returned instead.
	def ListDirectory(this, id):
		node = this.GetDirectory(id)
		try:
			this.resolver.EnsurePopulated(node)
		except Unavailable as e:
			if (not node.IsPopulated()):
				raise
			logging.warning(f"Serving cached listing of {node.name}: {e}")

		return [
			(child.id, 'dir' if child.IsDirectory() else 'file', child.name)
			for child in this.inodes.Children(id)
		]


	# -- File ops

	# Start an edit session on an object (or open a sidecar).
	# The document is fetched now, outside any lock, unless the caller is about to overwrite it entirely.
	# RETURNS a numeric file handle.
	def OpenObject(this, id, flags=os.O_RDONLY):
		if (this.sidecars.IsSidecarId(id)):
			sidecar = this.sidecars.Get(id)
			if (sidecar is None):
				raise NotFound(f"No sidecar with id {id}")
			handle = SidecarHandle(sidecar, flags)
			if (flags & os.O_TRUNC):
				handle.truncate(0)
			return this._Register(handle)

		node = this.GetObject(id)
		path = this.resolver.ObjectPath(node)

		document = None
		accmode = flags & (os.O_RDONLY | os.O_RDWR | os.O_WRONLY)
		if (not (flags & os.O_TRUNC and accmode == os.O_WRONLY)):
			document = this._Fetch(node, path)

		session = EditSession(node.id, path, flags, document)
		fh = this._Register(session)
		logging.debug(f"Opened {'/'.join(path)} as {fh} (flags {flags:#o}).")
		return fh

	# RETURNS bytes of the document from *offset* on. Reading past the end yields b"".
	def ReadObject(this, id, offset=0, length=None, fh=None):
		if (fh is not None):
			return this._Session(id, fh).read(offset, length)

		if (this.sidecars.IsSidecarId(id)):
			raise Invalid("Sidecars can only be read through a handle", errno.EBADF)

		node = this.GetObject(id)
		data = this._Fetch(node, this.resolver.ObjectPath(node)).encode('utf-8')
		if (length is None):
			return data[offset:]
		return data[offset:offset + length]

	# Buffer *data* in the edit session. Nothing is sent to the cluster until the session is flushed or released.
	# RETURNS the number of bytes accepted.
	def WriteObject(this, id, fh, offset, data):
		return this._Session(id, fh).write(offset, data)

	# Without a handle this is a complete edit: open, truncate, commit, close.
	def TruncateObject(this, id, size, fh=None):
		if (fh is not None):
			this._Session(id, fh).truncate(size)
			return

		fh = this.OpenObject(id, os.O_RDWR)
		try:
			this._Session(id, fh).truncate(size)
			this.FlushObject(id, fh)
		finally:
			this._Forget(fh)

	def FlushObject(this, id, fh):
		session = this._Session(id, fh)
		if (isinstance(session, EditSession)):
			this._Commit(session)

	# Commit whatever is left and close the handle.
	# The handle is closed even if the commit fails; the failure is still raised.
	def ReleaseObject(this, id, fh):
		session = this._Session(id, fh)
		try:
			if (isinstance(session, EditSession)):
				this._Commit(session)
		finally:
			this._Forget(fh)

	def _Register(this, session):
		with this.sessionLock:
			fh = next(this.handles)
			this.sessions[fh] = session
			return fh

	def _Forget(this, fh):
		with this.sessionLock:
			session = this.sessions.pop(fh, None)
		if (session is not None):
			session.close()

	def _Session(this, id, fh):
		with this.sessionLock:
			session = this.sessions.get(fh)
		if (session is None):
			raise Invalid(f"No open handle {fh}", errno.EBADF)

		sessionId = session.sidecar.id if isinstance(session, SidecarHandle) else session.nodeId
		if (sessionId != id):
			raise Invalid(f"Handle {fh} does not belong to {id}", errno.EBADF)
		return session

	def _Fetch(this, node, path):
		namespace, kind, name = path
		document = this.source.get_object_document(name, namespace, kind)
		this.sizeHints[node.id] = len(document.encode('utf-8'))
		return document

	# Replace the remote object with the whole buffer, if anything changed.
	# On failure the session stays dirty, so a later flush or release retries.
	def _Commit(this, session):
		if (not session.IsDirty()):
			return

		namespace, kind, name = session.path
		document = session.GetDocument()
		this.source.replace_object_document(name, namespace, kind, document)
		session.MarkClean(document)
		this.sizeHints[session.nodeId] = len(document.encode('utf-8'))
		logging.info(f"Replaced {namespace}/{kind}/{name} ({len(document)} characters).")


	# -- Directory entry ops

	# Only editor sidecars can be created; objects come from the cluster.
	# RETURNS (SidecarFile, fh).
	def Create(this, parent, name, flags=os.O_WRONLY | os.O_CREAT):
		parentNode = this.GetDirectory(parent)
		if (not this.sidecars.IsSidecarName(name)):
			raise Invalid(f"Cannot create {name} in {parentNode.name}; only existing objects can be edited", errno.EPERM)
		if (this.inodes.ChildByName(parent, name) is not None):
			raise AlreadyExists(f"{parentNode.name} already has an entry {name}")

		sidecar = this.sidecars.Create(parent, name)
		logging.debug(f"Created sidecar {name} in {parentNode.name} ({sidecar.id}).")
		return sidecar, this.OpenObject(sidecar.id, flags)

	def MakeDirectory(this, parent, name):
		this.GetDirectory(parent)
		if (parent != ROOT_ID):
			raise Invalid("Directories can only be made at the root (namespaces)", errno.EPERM)
		return this.CreateNamespace(name)

	def RemoveDirectory(this, parent, name):
		this.GetDirectory(parent)
		if (parent != ROOT_ID):
			raise Invalid("Only namespaces can be removed", errno.EPERM)
		this.RemoveNamespace(name)

	def Unlink(this, parent, name):
		if (this.sidecars.Remove(parent, name)):
			logging.debug(f"Removed sidecar {name} from {parent}.")
			return

		node = this.Lookup(parent, name)
		if (node.IsDirectory()):
			raise Invalid(f"{name} is a directory", errno.EISDIR)
		raise Invalid("Objects cannot be deleted through KubeFS", errno.EPERM)

	# Create the namespace remotely, then record it directly. The next listing of the root reconciles as usual.
	def CreateNamespace(this, name):
		if (this.inodes.ChildByName(ROOT_ID, name) is not None):
			raise AlreadyExists(f"Namespace {name} already exists")

		this.source.create_namespace(name)
		logging.info(f"Created namespace {name}.")

		try:
			return this.inodes.AddChild(ROOT_ID, name, Level.NAMESPACE)
		except AlreadyExists:
			# A concurrent listing got there first.
			return this.inodes.ChildByName(ROOT_ID, name)

	def RemoveNamespace(this, name):
		node = this.inodes.ChildByName(ROOT_ID, name)
		if (node is None):
			this.resolver.EnsurePopulated(this.GetNode(ROOT_ID))
			node = this.inodes.ChildByName(ROOT_ID, name)
		if (node is None):
			raise NotFound(f"No namespace {name}")

		this.source.delete_namespace(name)
		logging.info(f"Deleted namespace {name}.")

		try:
			this.inodes.RemoveSubtree(node.id)
		except NotFound:
			# Already reconciled away.
			pass
