import logging

from escapequiz.services.live import LiveChannel, LiveHub, team_channel


def test_subscribers_receive_full_snapshots_until_cancelled():
    channel = LiveChannel('leaderboard')
    seen = []
    sub = channel.subscribe(seen.append)
    assert channel.publish([{'team_id': 1}]) == 1
    assert channel.publish([{'team_id': 1}, {'team_id': 2}]) == 1
    assert seen == [[{'team_id': 1}], [{'team_id': 1}, {'team_id': 2}]]

    sub.cancel()
    sub.cancel()  # second cancel is harmless
    assert channel.publish([]) == 0
    assert len(seen) == 2
    assert channel.subscriber_count == 0


def test_failing_subscriber_does_not_block_others():
    channel = LiveChannel('game_config', logger=logging.getLogger('test-live'))
    seen = []

    def broken(_snapshot):
        raise RuntimeError('boom')

    channel.subscribe(broken)
    channel.subscribe(seen.append)
    assert channel.publish({'status': 'STARTED'}) == 1
    assert seen == [{'status': 'STARTED'}]


def test_hub_forwards_every_channel_once():
    forwarded = []
    hub = LiveHub(forward=lambda name, snap: forwarded.append((name, snap)))
    assert hub.channel('game_config') is hub.channel('game_config')
    hub.publish('game_config', {'status': 'WAITING'})
    hub.publish(team_channel(7), {'score': 1})
    assert forwarded == [('game_config', {'status': 'WAITING'}), ('team:7', {'score': 1})]


def test_hub_subscription_is_per_channel():
    hub = LiveHub()
    a, b = [], []
    hub.subscribe('leaderboard', a.append)
    sub_b = hub.subscribe('game_config', b.append)
    hub.publish('leaderboard', 'L')
    hub.publish('game_config', 'C')
    sub_b.cancel()
    hub.publish('game_config', 'C2')
    assert a == ['L']
    assert b == ['C']


def test_drop_forgets_channel_and_closes_room():
    closed = []
    hub = LiveHub(forward=lambda name, snap: None, close=closed.append)
    seen = []
    sub = hub.subscribe('team:3', seen.append)
    assert 'team:3' in hub

    assert hub.drop('team:3') is True
    assert 'team:3' not in hub
    assert closed == ['team:3']
    assert hub.drop('team:3') is False
    assert closed == ['team:3']

    hub.publish('team:3', {'score': 1})
    assert seen == []
    sub.cancel()
