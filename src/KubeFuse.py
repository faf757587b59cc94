import os
import stat

import fuse

from libkubefs.Utils import SplitPath, udirname, ubasename
from libkubefs.fs.InodeTable import ROOT_ID

from .FuseMethod import FuseMethod

fuse.fuse_python_api = (0, 2)


# What fuse-python hands back to us on every call made against an open file.
class OpenFile(object):
	direct_io = True # sizes are estimates; never let the kernel clip reads to them
	keep_cache = False

	def __init__(this, id, fh):
		this.id = id
		this.fh = fh


# KubeFuse translates path-based fuse-python callbacks into KubeFS calls.
# Each callback resolves its path from the root with Lookup, then makes exactly one adapter call.
class KubeFuse(fuse.Fuse):
	def __init__(this, kubefs, *args, **kwargs):
		super(KubeFuse, this).__init__(*args, **kwargs)
		this.kubefs = kubefs

	# RETURNS the Node or SidecarFile at *path*.
	def Resolve(this, path):
		entry = this.kubefs.GetNode(ROOT_ID)
		for name in SplitPath(path):
			entry = this.kubefs.Lookup(entry.id, name)
		return entry

	def ResolveParent(this, path):
		return this.Resolve(udirname(path)).id, ubasename(path)

	def MakeStat(this, attrs):
		st = fuse.Stat()
		if attrs['type'] == 'dir':
			st.st_mode = stat.S_IFDIR | attrs['mode']
		else:
			st.st_mode = stat.S_IFREG | attrs['mode']
		st.st_ino = attrs['id']
		st.st_nlink = attrs['nlink']
		st.st_size = attrs['size']
		st.st_uid = os.getuid()
		st.st_gid = os.getgid()
		st.st_atime = int(attrs['atime'])
		st.st_mtime = int(attrs['mtime'])
		st.st_ctime = int(attrs['ctime'])
		return st

	# -- Directory handle ops

	@FuseMethod
	def readdir(this, path, offset):
		node = this.Resolve(path)

		entries = [fuse.Direntry('.'),
				   fuse.Direntry('..')]

		for id, type, name in this.kubefs.ListDirectory(node.id):
			entries.append(fuse.Direntry(name, ino=id))

		return entries

	@FuseMethod
	def mkdir(this, path, mode):
		# *mode* is dropped; namespaces have no permissions of their own
		parent, name = this.ResolveParent(path)
		this.kubefs.MakeDirectory(parent, name)
		return 0

	@FuseMethod
	def rmdir(this, path):
		parent, name = this.ResolveParent(path)
		this.kubefs.RemoveDirectory(parent, name)
		return 0

	# -- File ops

	@FuseMethod
	def open(this, path, flags):
		entry = this.Resolve(path)
		return OpenFile(entry.id, this.kubefs.OpenObject(entry.id, flags))

	@FuseMethod
	def create(this, path, flags, mode):
		parent, name = this.ResolveParent(path)
		sidecar, fh = this.kubefs.Create(parent, name, flags)
		return OpenFile(sidecar.id, fh)

	@FuseMethod
	def read(this, path, size, offset, f):
		return this.kubefs.ReadObject(f.id, offset, size, fh=f.fh)

	@FuseMethod
	def write(this, path, data, offset, f):
		return this.kubefs.WriteObject(f.id, f.fh, offset, data)

	@FuseMethod
	def flush(this, path, f):
		this.kubefs.FlushObject(f.id, f.fh)
		return 0

	@FuseMethod
	def release(this, path, flags, f):
		this.kubefs.ReleaseObject(f.id, f.fh)
		return 0

	@FuseMethod
	def ftruncate(this, path, size, f):
		this.kubefs.TruncateObject(f.id, size, fh=f.fh)
		return 0

	@FuseMethod
	def truncate(this, path, size):
		entry = this.Resolve(path)
		this.kubefs.TruncateObject(entry.id, size)
		return 0

	# -- Handleless ops

	@FuseMethod
	def getattr(this, path):
		entry = this.Resolve(path)
		return this.MakeStat(this.kubefs.GetAttributes(entry.id))

	@FuseMethod
	def unlink(this, path):
		parent, name = this.ResolveParent(path)
		this.kubefs.Unlink(parent, name)
		return 0

	# Editors set times and modes after saving. Permissions are not enforced, so accept and ignore.
	@FuseMethod
	def utimens(this, path, ts_acc, ts_mod):
		this.Resolve(path)
		return 0

	@FuseMethod
	def chmod(this, path, mode):
		this.Resolve(path)
		return 0

	@FuseMethod
	def chown(this, path, uid, gid):
		this.Resolve(path)
		return 0
