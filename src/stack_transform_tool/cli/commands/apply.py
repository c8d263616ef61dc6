"""
应用 transform 命令模块
"""

import time
from pathlib import Path

from ..validators import validate_transform_string, validate_thread_index
from ..file_utils import parse_file_paths, default_output_path
from ...parser import parse_profile_file, write_profile_file, ProfileData
from ...transforms import apply_transform_stack, stringify_transforms


def load_profile_and_thread(args):
    """
    加载 profile 并选出要处理的线程

    Returns:
        Tuple[ProfileData, int]: profile 与线程下标
    """
    file_paths = parse_file_paths(args.file)
    profile = parse_profile_file(file_paths[0])
    thread_index = validate_thread_index(args.thread_index, len(profile.threads))
    return profile, thread_index


def resolve_default_category(args, profile: ProfileData) -> int:
    if getattr(args, 'default_category', None) is not None:
        return args.default_category
    return profile.default_category


class ApplyCommand:
    """应用 transform 命令处理器"""

    def run(self, args) -> int:
        """对线程应用 transform 栈并输出新的 profile"""
        print(f"=== 应用 transform ===")
        print(f"文件: {args.file}")
        print(f"线程下标: {args.thread_index}")
        print(f"Transform: {args.transforms if args.transforms else '无'}")
        print()

        try:
            transforms = validate_transform_string(args.transforms)
            profile, thread_index = load_profile_and_thread(args)
        except (ValueError, FileNotFoundError) as e:
            print(f"错误: {e}")
            return 1

        start_time = time.time()
        thread = profile.threads[thread_index]
        default_category = resolve_default_category(args, profile)
        print(f"原始线程: {thread.name}，调用栈 {thread.stack_table.length} 个，样本 {thread.samples.length} 个")

        new_thread = apply_transform_stack(thread, transforms, default_category)
        threads = list(profile.threads)
        threads[thread_index] = new_thread
        meta = dict(profile.meta)
        meta['transforms'] = stringify_transforms(transforms)

        output_path = Path(args.output) if args.output else default_output_path(
            args.file, args.output_dir, 'transformed')
        write_profile_file(ProfileData(threads=threads, categories=profile.categories, meta=meta), output_path)

        print(f"新线程: 调用栈 {new_thread.stack_table.length} 个")
        print(f"输出文件: {output_path}")
        print(f"\n处理完成，总耗时: {time.time() - start_time:.2f} 秒")
        return 0
