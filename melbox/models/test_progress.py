# melbox/models/test_progress.py
from melbox.models.progress import GameProgress

def test_first_level_counts_its_points():
    progress = GameProgress().record(1, 40)
    assert progress.total_points == 40
    assert progress.completed_levels == [1]
    assert progress.level_scores == {'1': 40}
    assert progress.next_unlocked_level == 2

def test_only_the_improvement_on_a_level_is_added():
    progress = GameProgress().record(1, 40).record(2, 10)

    better = progress.record(1, 55)
    assert better.total_points == 65
    assert better.level_scores['1'] == 55

    worse = better.record(1, 5)
    assert worse.total_points == 65
    assert worse.level_scores['1'] == 55
    assert worse.completed_levels == [1, 2]

def test_nothing_played_unlocks_level_one():
    assert GameProgress().next_unlocked_level == 1
    assert GameProgress.from_dict(None) == GameProgress()

def test_from_dict_reads_stored_map():
    progress = GameProgress.from_dict({
        'total_points': 30, 'completed_levels': [1, 3], 'level_scores': {'1': 10, '3': 20}
    })
    assert progress.next_unlocked_level == 4
    assert progress.record(3, 25).total_points == 35
