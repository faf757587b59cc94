from StandardTestFixture import StandardTestFixture

from libkubefs.Errors import NotFound, Unavailable, Invalid
from libkubefs.fs.InodeTable import ROOT_ID
from libkubefs.fs.Level import Level
from libkubefs.kube.Kinds import DEFAULT_KINDS


class TestLevelResolver(StandardTestFixture):

	def setup_method(this, method):
		super().setup_method(method)
		this.MakeFS(cache_ttl=1)
		this.resolver = this.fs.resolver
		this.inodes = this.fs.inodes

	def Root(this):
		return this.inodes.Get(ROOT_ID)

	def test_root_starts_empty(this):
		this.assert_equal(this.inodes.Children(ROOT_ID), [])
		this.assert_equal(this.Root().lastPopulated, None)
		this.assert_equal(this.source.calls, [])

	def test_populate_root(this):
		this.source.namespaces = {"default": {}, "dev": {}}
		this.resolver.EnsurePopulated(this.Root())

		children = this.inodes.Children(ROOT_ID)
		this.assert_equal([node.name for node in children], ["default", "dev"])
		for node in children:
			this.assert_equal(node.level, Level.NAMESPACE)
		this.assert_equal(this.Root().lastPopulated, this.clock.now)

	def test_namespace_yields_fixed_kinds_without_remote(this):
		this.source.namespaces = {"default": {}}
		this.resolver.EnsurePopulated(this.Root())
		default = this.inodes.ChildByName(ROOT_ID, "default")
		this.source.calls = []

		this.resolver.EnsurePopulated(default)

		this.assert_equal({node.name for node in this.inodes.Children(default.id)}, set(DEFAULT_KINDS))
		for node in this.inodes.Children(default.id):
			this.assert_equal(node.level, Level.KIND)
		this.assert_equal(this.source.calls, [])

	def test_fresh_directories_are_not_refetched(this):
		this.source.namespaces = {"default": {}}
		this.resolver.EnsurePopulated(this.Root())
		this.resolver.EnsurePopulated(this.Root())
		this.assert_equal(len(this.source.CallsTo('list_namespaces')), 1)

		this.clock.Advance(0.5)
		this.resolver.EnsurePopulated(this.Root())
		this.assert_equal(len(this.source.CallsTo('list_namespaces')), 1)

		this.clock.Advance(0.6)
		this.resolver.EnsurePopulated(this.Root())
		this.assert_equal(len(this.source.CallsTo('list_namespaces')), 2)

	def test_object_removed_from_listing(this):
		this.source.AddObject("default", "deployments", "deploy-1")
		this.source.AddObject("default", "deployments", "deploy-2")
		deployments = this.Resolve("default", "deployments")

		this.resolver.EnsurePopulated(deployments)
		deploy1 = this.inodes.ChildByName(deployments.id, "deploy-1")
		deploy2 = this.inodes.ChildByName(deployments.id, "deploy-2")
		this.assert_equal(deploy1.level, Level.OBJECT)

		this.source.RemoveObject("default", "deployments", "deploy-2")
		this.clock.Advance(5)
		this.resolver.EnsurePopulated(deployments)

		this.assert_equal(this.inodes.Get(deploy2.id), None)
		this.assert_equal(this.inodes.ChildByName(deployments.id, "deploy-1").id, deploy1.id)

	def test_failure_keeps_cache(this):
		this.source.namespaces = {"default": {}, "dev": {}}
		this.resolver.EnsurePopulated(this.Root())
		before = [node.id for node in this.inodes.Children(ROOT_ID)]
		populated = this.Root().lastPopulated

		this.clock.Advance(5)
		this.source.failing = Unavailable("connection refused")
		this.assert_raises(Unavailable, this.resolver.EnsurePopulated, this.Root())

		this.assert_equal([node.id for node in this.inodes.Children(ROOT_ID)], before)
		this.assert_equal(this.Root().lastPopulated, populated)

	def test_unexpected_errors_become_unavailable(this):
		this.source.failing = ConnectionResetError("reset by peer")
		this.assert_raises(Unavailable, this.resolver.EnsurePopulated, this.Root())
		this.assert_equal(this.Root().lastPopulated, None)

	def test_missing_namespace_is_not_found(this):
		this.source.namespaces = {"default": {}}
		pods = this.Resolve("default", "pods")
		del this.source.namespaces["default"]
		this.assert_raises(NotFound, this.resolver.EnsurePopulated, pods)

	def test_objects_have_no_children(this):
		this.source.AddObject("default", "pods", "web-0")
		web = this.Resolve("default", "pods", "web-0")
		this.source.calls = []

		this.resolver.EnsurePopulated(web)
		this.assert_equal(this.source.calls, [])
		this.assert_equal(this.inodes.Children(web.id), [])

	def test_object_path(this):
		this.source.AddObject("default", "configmaps", "settings")
		settings = this.Resolve("default", "configmaps", "settings")
		this.assert_equal(this.resolver.ObjectPath(settings), ("default", "configmaps", "settings"))
		this.assert_raises(Invalid, this.resolver.ObjectPath, this.Resolve("default"))

	def test_custom_kinds(this):
		this.MakeFS(kinds=["pods", "widgets"])
		this.source.namespaces = {"default": {}}
		default = this.Resolve("default")
		this.fs.resolver.EnsurePopulated(default)
		this.assert_equal([node.name for node in this.fs.inodes.Children(default.id)], ["pods", "widgets"])

	# A namespace made locally while the root was being listed forces a second listing.
	def test_listing_raced_by_local_change_is_refetched(this):
		this.source.namespaces = {"default": {}}
		listNamespaces = this.source.list_namespaces

		def ListAndCreate():
			names = listNamespaces()
			if (len(this.source.CallsTo('list_namespaces')) == 1):
				this.source.namespaces["prod"] = {}
				this.inodes.AddChild(ROOT_ID, "prod", Level.NAMESPACE)
			return names

		this.source.list_namespaces = ListAndCreate
		this.resolver.EnsurePopulated(this.Root())

		this.assert_equal(len(this.source.CallsTo('list_namespaces')), 2)
		this.assert_equal([node.name for node in this.inodes.Children(ROOT_ID)], ["default", "prod"])
		this.assert_equal(this.Root().lastPopulated, this.clock.now)

	def test_listing_that_never_settles(this):
		this.source.namespaces = {"default": {}}
		listNamespaces = this.source.list_namespaces
		made = []

		def ListAndCreate():
			names = listNamespaces()
			made.append(this.inodes.AddChild(ROOT_ID, f"ns-{len(made)}", Level.NAMESPACE))
			return names

		this.source.list_namespaces = ListAndCreate
		this.assert_raises(Unavailable, this.resolver.EnsurePopulated, this.Root())
		this.assert_equal(len(made), 3)
		this.assert_equal(this.Root().lastPopulated, None)
		this.assert_equal(len(this.inodes.Children(ROOT_ID)), 3)
