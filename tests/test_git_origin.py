"""Tests for the git origin and its reader."""

import os
from datetime import datetime, timedelta, timezone

import pytest

from repo_migrate.authoring import overwrite
from repo_migrate.core import Glob, VisitResult
from repo_migrate.exceptions import (
    CannotResolveReferenceException,
    CheckoutHookException,
    RepoException,
    ValidationException,
)
from repo_migrate.git.origin import GitOrigin, GitRepoType

from conftest import requires_git

pytestmark = requires_git

AUTHOR = 'John Name <john@name.com>'


@pytest.fixture
def first_commit(origin_repo):
    origin_repo.write('test.txt', 'some content')
    return origin_repo.commit('first file')


@pytest.fixture
def origin(origin_repo, cache, first_commit):
    return GitOrigin(origin_repo.url(), 'master', cache)


@pytest.fixture
def checkout_dir(tmp_path):
    path = tmp_path / 'checkout'
    path.mkdir()
    return path


def _reader(origin, path_filter=Glob.ALL_FILES):
    return origin.new_reader(path_filter, overwrite('Copy <copy@example.com>'))


def _single_file_commit(repo, message, name, content, author=AUTHOR):
    repo.write(name, content)
    return repo.commit(message, author=author)


def _create_branch_merge(repo, author=AUTHOR):
    repo.git('checkout', '-q', '-b', 'feature')
    _single_file_commit(repo, 'change2', 'test2.txt', 'some content2', author)
    _single_file_commit(repo, 'change3', 'test2.txt', 'some content3', author)
    repo.git('checkout', '-q', 'master')
    _single_file_commit(repo, 'master1', 'test.txt', 'some content2', author)
    _single_file_commit(repo, 'master2', 'test.txt', 'some content3', author)
    repo.git('merge', '-q', '--no-ff', '-m', "Merge branch 'feature'", 'feature')
    repo.git('commit', '-q', '--amend', f'--author={author}', '--no-edit')


def _make_hook(tmp_path, body):
    hook = tmp_path / 'hook.sh'
    hook.write_text(f'#!/bin/sh\n{body}\n')
    os.chmod(hook, 0o755)
    return str(hook)


class TestGitOriginConfig:
    """Test origin construction."""

    def test_empty_url(self, cache):
        """Test an origin needs an url."""
        with pytest.raises(ValidationException):
            GitOrigin('', 'master', cache)

    def test_invalid_github_url(self, cache):
        """Test github origins only accept GitHub URLs."""
        with pytest.raises(ValidationException) as exc_info:
            GitOrigin('https://foo.com/copybara', 'master', cache, GitRepoType.GITHUB)

        assert 'Invalid Github URL: https://foo.com/copybara' in str(exc_info.value)

    def test_github_url(self, cache):
        """Test a valid GitHub origin."""
        origin = GitOrigin('https://github.com/foo/bar', None, cache, GitRepoType.GITHUB)

        assert str(origin) == (
            'GitOrigin(repo_url=https://github.com/foo/bar, ref=None, repo_type=GITHUB)'
        )


class TestGitOriginCheckout:
    """Test checking out origin references."""

    def test_checkout(self, origin, checkout_dir):
        """Test checking out the default reference."""
        _reader(origin).checkout(origin.resolve(None), checkout_dir)

        assert (checkout_dir / 'test.txt').read_text() == 'some content'

    def test_checkout_of_a_ref(self, origin, origin_repo, first_commit, checkout_dir):
        """Test checking out an older commit by SHA-1."""
        _single_file_commit(origin_repo, 'change2', 'test.txt', 'some content2')

        _reader(origin).checkout(origin.resolve(first_commit), checkout_dir)

        assert (checkout_dir / 'test.txt').read_text() == 'some content'

    def test_checkout_with_local_modifications(self, origin, checkout_dir):
        """Test that a checkout overwrites local changes."""
        reader = _reader(origin)
        master = origin.resolve('master')
        reader.checkout(master, checkout_dir)
        (checkout_dir / 'test.txt').unlink()
        (checkout_dir / 'extra.txt').write_text('not in origin')

        reader.checkout(master, checkout_dir)

        assert (checkout_dir / 'test.txt').read_text() == 'some content'
        assert not (checkout_dir / 'extra.txt').exists()

    def test_checkout_removes_deleted_files(self, origin, origin_repo, checkout_dir):
        """Test that files deleted in the origin disappear from the checkout."""
        reader = _reader(origin)
        _single_file_commit(origin_repo, 'add', 'other.txt', 'other')
        reader.checkout(origin.resolve('master'), checkout_dir)
        origin_repo.git('rm', '-q', 'other.txt')
        origin_repo.commit('delete')

        reader.checkout(origin.resolve('master'), checkout_dir)

        assert sorted(p.name for p in checkout_dir.iterdir()) == ['test.txt']

    def test_checkout_with_glob(self, origin, origin_repo, checkout_dir):
        """Test that files outside the path filter are removed."""
        _single_file_commit(origin_repo, 'add', 'dir/other.txt', 'other')

        _reader(origin, Glob(include=('dir/**',))).checkout(
            origin.resolve('master'), checkout_dir
        )

        assert (checkout_dir / 'dir' / 'other.txt').exists()
        assert not (checkout_dir / 'test.txt').exists()

    def test_checkout_hook(self, origin_repo, cache, first_commit, checkout_dir, tmp_path):
        """Test the hook runs inside the checkout directory."""
        hook = _make_hook(tmp_path, 'touch hook.txt')
        origin = GitOrigin(origin_repo.url(), 'master', cache, checkout_hook=hook)

        _reader(origin).checkout(origin.resolve('master'), checkout_dir)

        assert (checkout_dir / 'hook.txt').read_text() == ''

    def test_checkout_hook_exit_error(
        self, origin_repo, cache, first_commit, checkout_dir, tmp_path
    ):
        """Test a failing hook fails the checkout."""
        hook = _make_hook(tmp_path, 'exit 1')
        origin = GitOrigin(origin_repo.url(), 'master', cache, checkout_hook=hook)

        with pytest.raises(CheckoutHookException) as exc_info:
            _reader(origin).checkout(origin.resolve('master'), checkout_dir)

        assert 'Error executing the git checkout hook' in str(exc_info.value)
        assert exc_info.value.exit_code == 1


class TestGitOriginChanges:
    """Test reading changes from the origin."""

    def test_changes(self, origin, origin_repo, first_commit):
        """Test changes are returned oldest first with their metadata."""
        before = datetime.now(timezone.utc) - timedelta(seconds=1)
        _single_file_commit(origin_repo, 'change2', 'test.txt', 'some content2')
        _single_file_commit(origin_repo, 'change3', 'test.txt', 'some content3')
        _single_file_commit(origin_repo, 'change4', 'test.txt', 'some content4')

        changes = _reader(origin).changes(origin.resolve(first_commit), origin.resolve('HEAD'))

        assert [c.message for c in changes] == ['change2\n', 'change3\n', 'change4\n']
        for change in changes:
            assert change.author.email == 'john@name.com'
            assert before <= change.date_time <= datetime.now(timezone.utc) + timedelta(
                seconds=1
            )

    def test_no_changes(self, origin, first_commit):
        """Test that no changes exist between a commit and itself."""
        changes = _reader(origin).changes(origin.resolve(first_commit), origin.resolve('HEAD'))

        assert changes == []

    def test_changes_with_glob(self, origin, origin_repo, first_commit):
        """Test that changes outside the path filter are skipped."""
        _single_file_commit(origin_repo, 'in scope', 'dir/a.txt', 'a')
        _single_file_commit(origin_repo, 'out of scope', 'test.txt', 'b')

        reader = _reader(origin, Glob(include=('dir/**',)))
        changes = reader.changes(origin.resolve(first_commit), origin.resolve('HEAD'))

        assert [c.first_line_message() for c in changes] == ['in scope']

    def test_change(self, origin, origin_repo):
        """Test reading a single change."""
        _single_file_commit(origin_repo, 'change2', 'test.txt', 'some content2')
        last = origin.resolve('HEAD')

        change = _reader(origin).change(last)

        assert change.author.email == 'john@name.com'
        assert change.first_line_message() == 'change2'
        assert change.reference.as_string() == last.as_string()
        assert change.reference.label_name == 'GitOrigin-RevId'

    def test_change_multi_label(self, origin, origin_repo, log_messages):
        """Test that the last value of a repeated label wins."""
        message = (
            'I am a commit with a label happening twice\n\nfoo: bar\n\nfoo: baz\n'
        )
        _single_file_commit(origin_repo, message, 'test.txt', 'content')

        change = _reader(origin).change(origin.resolve('HEAD'))

        assert change.labels['foo'] == 'baz'
        assert (
            "Possible duplicate label 'foo' happening multiple times in commit. "
            "Keeping only the last value: 'baz'\n  Discarded value: 'bar'"
        ) in log_messages

    def test_no_change(self, origin, first_commit):
        """Test resolving a missing reference."""
        origin.resolve(first_commit)

        with pytest.raises(CannotResolveReferenceException) as exc_info:
            origin.resolve('foo')

        assert "Cannot find reference 'foo'" in str(exc_info.value)

    def test_empty_reference_without_default(self, origin_repo, cache, first_commit):
        """Test that an empty reference needs a configured default."""
        origin = GitOrigin(origin_repo.url(), None, cache)

        for expression in (None, ''):
            with pytest.raises(RepoException) as exc_info:
                origin.resolve(expression)

            assert 'no default reference is configured' in str(exc_info.value)

    def test_visit(self, origin, origin_repo):
        """Test that the visit stops when the visitor terminates."""
        for i, name in enumerate(['one', 'two', 'three']):
            _single_file_commit(origin_repo, name, 'test.txt', f'some content{i}')
        visited = []

        def visitor(change):
            visited.append(change)
            if change.first_line_message() == 'three':
                return VisitResult.CONTINUE
            return VisitResult.TERMINATE

        _reader(origin).visit_changes(origin.resolve('HEAD'), visitor)

        assert [c.first_line_message() for c in visited] == ['three', 'two']

    def test_visit_merge(self, origin, origin_repo):
        """Test that visits only follow first parents."""
        _create_branch_merge(origin_repo)
        visited = []

        def visitor(change):
            visited.append(change.first_line_message())
            return VisitResult.CONTINUE

        _reader(origin).visit_changes(origin.resolve('HEAD'), visitor)

        assert visited == ["Merge branch 'feature'", 'master2', 'master1', 'first file']

    def test_changes_merge(self, origin, origin_repo, first_commit):
        """Test that changes only follow first parents."""
        _create_branch_merge(origin_repo)

        changes = _reader(origin).changes(origin.resolve(first_commit), origin.resolve('HEAD'))

        assert [c.message for c in changes] == [
            'master1\n',
            'master2\n',
            "Merge branch 'feature'\n",
        ]
        assert all(c.author.email == 'john@name.com' for c in changes)

    def test_git_url_overwrite(self, origin, make_repo, checkout_dir, log_messages):
        """Test that a URL passed as reference overrides the origin URL."""
        remote = make_repo('cliremote')
        remote.write('cli_remote.txt', 'some change')
        remote.commit('a change from somewhere')
        new_url = f'file://{remote.path}'

        reader = _reader(origin)
        cli_head = reader.change(origin.resolve(new_url))
        reader.checkout(cli_head.reference, checkout_dir)

        assert cli_head.first_line_message() == 'a change from somewhere'
        assert [p.name for p in checkout_dir.iterdir()] == ['cli_remote.txt']
        assert f'Git origin URL overwritten in the command line as {new_url}' in log_messages

    def test_can_read_timestamp(self, origin, origin_repo):
        """Test the reference timestamp is the commit time."""
        origin_repo.write('test2.txt', 'some more content')
        origin_repo.commit('second file', date='1400110011 +0000')

        timestamp = origin.resolve('master').read_timestamp()

        assert timestamp.timestamp() == 1400110011

    def test_tag_timestamp(self, origin, origin_repo):
        """Test resolving an annotated tag and reading its commit time."""
        origin_repo.write('test2.txt', 'some more content')
        tagged = origin_repo.commit('second file', date='1400110011 +0000')
        origin_repo.git('tag', '-a', '-m', 'first release', '0.1')
        origin_repo.write('test3.txt', 'newer content')
        origin_repo.commit('third file', date='1500110011 +0000')

        reference = origin.resolve('0.1')

        assert reference.sha1 == tagged
        assert reference.read_timestamp().timestamp() == 1400110011

    def test_color(self, origin, origin_repo, first_commit):
        """Test that a colored git configuration doesn't break parsing."""
        origin_repo.git('config', '--global', 'color.ui', 'always')
        first = origin.resolve(first_commit)
        _single_file_commit(origin_repo, 'second commit', 'test.txt', 'new content')
        second = origin.resolve('HEAD')

        reader = _reader(origin)

        assert 'first file' in reader.change(first).message
        assert len(reader.changes(None, second)) == 2
        assert len(reader.changes(first, second)) == 1
