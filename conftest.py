# Copyright (c) mrmilbe

"""Lets the tests import pcm_wave and pcm_waveform_core from a source checkout."""
