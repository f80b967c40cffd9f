from mediavault.services.filename_parser import parse_filename


def test_episode_release_name():
    parsed = parse_filename("/downloads/Show.Name.S01E02.1080p.WEB-DL.x264.mkv")
    assert parsed.title == "Show Name"
    assert (parsed.season, parsed.episode) == (1, 2)
    assert parsed.resolution == 1080
    assert parsed.is_episode


def test_movie_release_name():
    parsed = parse_filename("Movie.Title.2020.1080p.BluRay.mkv")
    assert parsed.title == "Movie Title"
    assert parsed.year == 2020
    assert parsed.season is None and parsed.episode is None
    assert not parsed.is_episode


def test_alternative_episode_forms():
    parsed = parse_filename("The Office 2x05.mp4")
    assert (parsed.title, parsed.season, parsed.episode) == ("The Office", 2, 5)

    parsed = parse_filename("Some_Show_Season 1 Episode 3.avi")
    assert (parsed.title, parsed.season, parsed.episode) == ("Some Show", 1, 3)

    parsed = parse_filename("Show.Name.S03.E10.mkv")
    assert (parsed.title, parsed.season, parsed.episode) == ("Show Name", 3, 10)


def test_leading_year_stays_in_title():
    parsed = parse_filename("2001.A.Space.Odyssey.1968.mkv")
    assert parsed.title == "2001 A Space Odyssey"
    assert parsed.year == 1968


def test_season_without_episode_is_a_movie():
    parsed = parse_filename("Show.Name.S02.Complete.mkv")
    assert parsed.title == "Show Name"
    assert not parsed.is_episode


def test_plain_name():
    parsed = parse_filename("holiday_video.mp4")
    assert parsed.title == "holiday video"
    assert parsed.year is None


def test_year_like_number_inside_title():
    parsed = parse_filename("Blade.Runner.2049.2017.1080p.BluRay.mkv")
    assert parsed.title == "Blade Runner 2049"
    assert parsed.year == 2017

    parsed = parse_filename("Blade Runner 2049 (2017).mkv")
    assert (parsed.title, parsed.year) == ("Blade Runner 2049", 2017)


def test_year_in_parentheses():
    parsed = parse_filename("The Matrix (1999).mp4")
    assert (parsed.title, parsed.year) == ("The Matrix", 1999)
