from adminkit.decorators import CollectionDecorator, ResourceDecorator, decorate_for_action, undecorate
from conftest import Post


class PostDecorator(ResourceDecorator):
    @property
    def headline(self) -> str:
        return self.object.title.upper()


def test_resource_decorator_delegates() -> None:
    post = Post(title="hello", views=3)
    decorated = PostDecorator(post)

    assert decorated.headline == "HELLO"
    assert decorated.views == 3
    decorated.views = 4
    assert post.views == 4
    assert decorated == post
    assert undecorate(decorated) is post
    assert undecorate(PostDecorator(decorated)) is post
    assert undecorate(post) is post


def test_collection_decorator_is_lazy() -> None:
    seen = []

    def records():
        for title in ("a", "b"):
            seen.append(title)
            yield Post(title=title)

    decorated = CollectionDecorator(records(), PostDecorator)
    assert seen == []
    assert [post.headline for post in decorated] == ["A", "B"]


def test_collection_decorator_indexing_and_attributes() -> None:
    items = [Post(title="a"), Post(title="b"), Post(title="c")]
    decorated = CollectionDecorator(items, PostDecorator)

    assert decorated[0].headline == "A"
    assert [post.headline for post in decorated[1:]] == ["B", "C"]
    assert decorated.count(items[0]) == 1
    assert undecorate(decorated) is items


def test_decorate_for_action() -> None:
    assert not decorate_for_action("index", None)
    assert decorate_for_action("index", PostDecorator)
    assert decorate_for_action("show", PostDecorator)
    assert not decorate_for_action("edit", PostDecorator)
    assert not decorate_for_action("new", PostDecorator)
    assert decorate_for_action("update", PostDecorator, decorate_forms=True)
