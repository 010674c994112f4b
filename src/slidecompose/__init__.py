"""slidecompose — declarative slide videos.

Compile an ordered list of typed sections (title, problem statement,
solution, bullet points, comparison, results, conclusion) into a
frame-accurate timeline with keyframed reveal animations, and render it
to mp4 through a tracked render job.
"""
